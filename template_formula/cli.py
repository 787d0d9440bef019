from __future__ import annotations

import argparse
import json
import sys
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from template_formula.config import load_yaml
from template_formula.device_import import (
    generate_rows,
    read_device_rows,
    validate_device_rows,
    write_import_template,
)
from template_formula.engine import evaluate
from template_formula.errors import FormulaError
from template_formula.logging import configure_logging, log_event
from template_formula.preview import properties_from_values
from template_formula.properties import FormulaContext, Property
from template_formula.templates import DeviceTemplate, generate_device_fields
from template_formula.validation import validate_formula


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="template-formula")
    subparsers = parser.add_subparsers(dest="command")

    evaluate_cmd = subparsers.add_parser("evaluate", help="Render a formula against property values")
    evaluate_cmd.add_argument("--formula", required=True)
    evaluate_cmd.add_argument("--values", dest="values_path", required=True)
    evaluate_cmd.add_argument("--template", dest="template_path")
    evaluate_cmd.add_argument(
        "--context", choices=[c.value for c in FormulaContext], default=FormulaContext.DESCRIPTION_EN.value
    )

    validate_cmd = subparsers.add_parser("validate", help="Check property references and brace balance")
    validate_cmd.add_argument("--formula", required=True)
    validate_cmd.add_argument("--names", default="")
    validate_cmd.add_argument("--template", dest="template_path")

    generate_cmd = subparsers.add_parser("generate", help="Generate SKU and descriptions for one device")
    generate_cmd.add_argument("--template", dest="template_path", required=True)
    generate_cmd.add_argument("--values", dest="values_path", required=True)

    import_cmd = subparsers.add_parser("import", help="Validate an Excel device import and generate its fields")
    import_cmd.add_argument("--template", dest="template_path", required=True)
    import_cmd.add_argument("--in", dest="input_path", required=True)
    import_cmd.add_argument("--out", dest="output_path")

    sheet_cmd = subparsers.add_parser("import-template", help="Write a sample import workbook for a template")
    sheet_cmd.add_argument("--template", dest="template_path", required=True)
    sheet_cmd.add_argument("--out", dest="output_path", required=True)
    sheet_cmd.add_argument("--no-generation-columns", action="store_true")

    for sub in (evaluate_cmd, validate_cmd, generate_cmd, import_cmd, sheet_cmd):
        sub.add_argument("--log", dest="log_path")
    return parser


def _load_properties(values: Dict[str, Any], template: Optional[DeviceTemplate]) -> List[Property]:
    if isinstance(values.get("properties"), list):
        return [Property.from_mapping(item) for item in values["properties"]]
    if template is not None:
        return properties_from_values(template.properties, values)
    return [Property(name=str(name), value=value) for name, value in values.items()]


def run_evaluate(args: argparse.Namespace) -> int:
    template = DeviceTemplate.load(Path(args.template_path)) if args.template_path else None
    properties = _load_properties(load_yaml(Path(args.values_path)), template)
    print(evaluate(args.formula, properties, args.context))
    return 0


def run_validate(args: argparse.Namespace) -> int:
    names = [name.strip() for name in args.names.split(",") if name.strip()]
    if args.template_path:
        names += DeviceTemplate.load(Path(args.template_path)).property_names
    result = validate_formula(args.formula, names)
    if result.is_valid:
        print("OK")
        return 0
    print(result.error)
    return 1


def run_generate(args: argparse.Namespace) -> int:
    template = DeviceTemplate.load(Path(args.template_path))
    values = load_yaml(Path(args.values_path))
    fixed = values.pop("fixed", None) or {}
    fields = generate_device_fields(template, values, fixed)
    print(json.dumps(fields, ensure_ascii=False, indent=2))
    return 0


def run_import(args: argparse.Namespace, logger) -> int:
    run_id = uuid.uuid4().hex
    template = DeviceTemplate.load(Path(args.template_path))
    log_event(logger, "import_start", {"run_id": run_id, "input": args.input_path, "template": template.name})

    rows = read_device_rows(Path(args.input_path), template)
    validation = validate_device_rows(rows, template.identifier_property)
    report = {
        "template": template.name,
        "validation": validation.to_dict(),
        "devices": generate_rows(template, rows) if validation.is_valid else [],
    }
    text = json.dumps(report, ensure_ascii=False, indent=2)
    if args.output_path:
        Path(args.output_path).write_text(text, encoding="utf-8")
    print(text)

    log_event(logger, "import_complete", {"run_id": run_id, "valid": validation.is_valid, "rows": len(rows)})
    return 0 if validation.is_valid else 1


def run_import_template(args: argparse.Namespace) -> int:
    template = DeviceTemplate.load(Path(args.template_path))
    path = write_import_template(
        template, Path(args.output_path), include_generation_columns=not args.no_generation_columns
    )
    print(str(path))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    logger = configure_logging(Path(args.log_path) if args.log_path else None)
    try:
        if args.command == "evaluate":
            return run_evaluate(args)
        if args.command == "validate":
            return run_validate(args)
        if args.command == "generate":
            return run_generate(args)
        if args.command == "import":
            return run_import(args, logger)
        if args.command == "import-template":
            return run_import_template(args)
    except FormulaError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
