from __future__ import annotations

import json
import math
import zipfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from template_formula.definitions import PropertyDefinition, PropertyType
from template_formula.errors import DeviceImportError
from template_formula.logging import get_logger, log_event
from template_formula.preview import split_multi_value
from template_formula.templates import (
    DeviceTemplate,
    GeneratedField,
    GenerationType,
    generate_device_fields,
    identity_hash,
)

SHEET_NAME = "Devices"

COLUMN_MAPPING: Dict[str, str] = {
    "Name": "name",
    "Device Name": "name",
    "Product Name": "name",
    "Category": "category",
    "Type": "category",
    "Device Type": "category",
    "Brand": "brand",
    "Manufacturer": "brand",
    "Model": "model",
    "Model Number": "model",
    "Unit Price": "unit_price",
    "Price": "unit_price",
    "Cost": "unit_price",
    "Currency": "currency_code",
    "Image URL": "image_url",
    "Image": "image_url",
    "Specifications": "specifications",
    "Specs": "specifications",
    "Dynamic SKU": "dynamic_sku",
    "SKU": "sku",
    "Dynamic Description": "dynamic_description",
    "Description": "description",
    "Dynamic Short Description": "dynamic_short_description",
    "Short Description": "short_description",
}

# Row-level "Dynamic X" flags and the column holding that row's formula.
ROW_FORMULA_FIELDS = {
    "dynamic_sku": "sku",
    "dynamic_description": "description",
    "dynamic_short_description": "short_description",
}
ROW_FORMULA_LABELS = {"sku": "SKU", "description": "Description", "short_description": "Short Description"}

BASE_HEADERS = ["Name", "Category", "Brand", "Model", "Unit Price", "Currency", "Image URL", "Specifications"]
GENERATION_HEADERS = [
    "Dynamic SKU",
    "SKU",
    "Dynamic Description",
    "Description",
    "Dynamic Short Description",
    "Short Description",
]
BASE_SAMPLE = [
    "LED Panel Light",
    "LED Lighting",
    "Philips",
    "LP-001",
    "25.50",
    "USD",
    "https://example.com/image.jpg",
    '{"power": "20W", "voltage": "24V"}',
]
GENERATION_SAMPLE = [
    "TRUE",
    "LED-{wattage}W-{color}",
    "TRUE",
    "{wattage}W LED Panel - {color} Color Temperature",
    "FALSE",
    "Compact LED Panel",
]

_TRUE_STRINGS = {"true", "1", "yes"}


@dataclass
class ImportValidation:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def clean_value(value: Any) -> Any:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) and pd.isna(value):
        return None
    if hasattr(value, "item") and not isinstance(value, str):
        value = value.item()
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _as_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_STRINGS


def _as_price(value: Any) -> Any:
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", ""))
    except ValueError:
        return value


def _property_lookup(template: Optional[DeviceTemplate]) -> Dict[str, PropertyDefinition]:
    lookup: Dict[str, PropertyDefinition] = {}
    if template is None:
        return lookup
    for prop in template.properties:
        lookup[prop.name.lower().strip()] = prop
        if prop.label_en:
            lookup.setdefault(prop.label_en.lower().strip(), prop)
    return lookup


def _parse_row(row: Dict[str, Any], lookup: Dict[str, PropertyDefinition]) -> Dict[str, Any]:
    device: Dict[str, Any] = {"properties": {}}
    for header, raw in row.items():
        value = clean_value(raw)
        if value is None:
            continue
        header_text = str(header).strip()
        standard = COLUMN_MAPPING.get(header_text)
        if standard == "unit_price":
            device["unit_price"] = _as_price(value)
        elif standard in ROW_FORMULA_FIELDS:
            device[standard] = _as_flag(value)
        elif standard == "specifications":
            device["specifications"] = value if isinstance(value, str) else json.dumps(value)
        elif standard:
            device[standard] = str(value)
        else:
            prop = lookup.get(header_text.lower())
            if prop is not None and prop.data_type == PropertyType.DYNAMIC_MULTISELECT:
                device["properties"][prop.name] = split_multi_value(str(value))
            elif prop is not None:
                device["properties"][prop.name] = value
            else:
                device["properties"][header_text] = value
    return device


def read_device_rows(path: Path, template: Optional[DeviceTemplate] = None) -> List[Dict[str, Any]]:
    try:
        df = pd.read_excel(path, sheet_name=0, dtype=object)
    except (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException) as exc:
        raise DeviceImportError(f"Could not read {path}: {exc}") from exc
    if df.empty:
        raise DeviceImportError("Excel file must have at least a header row and one data row")

    lookup = _property_lookup(template)
    rows = [_parse_row(record, lookup) for record in df.to_dict(orient="records")]
    log_event(get_logger(), "import_parsed", {"path": str(path), "rows": len(rows)})
    return rows


def _identifier_value(device: Dict[str, Any], identifier_property: str) -> Any:
    if identifier_property in device.get("properties", {}):
        return device["properties"][identifier_property]
    return device.get(identifier_property)


def validate_device_rows(rows: List[Dict[str, Any]], identifier_property: Optional[str] = None) -> ImportValidation:
    result = ImportValidation()
    for index, device in enumerate(rows):
        row_num = index + 2  # Excel row number (1-based plus header)

        if not str(device.get("name") or "").strip():
            result.errors.append(f"Row {row_num}: Device name is required")
        if not str(device.get("category") or "").strip():
            result.errors.append(f"Row {row_num}: Category is required")
        if identifier_property and not _identifier_value(device, identifier_property):
            result.errors.append(f"Row {row_num}: Identifier property '{identifier_property}' is required")

        price = device.get("unit_price")
        if price is not None and (
            isinstance(price, bool) or not isinstance(price, (int, float)) or math.isnan(price) or price < 0
        ):
            result.errors.append(f"Row {row_num}: Unit price must be a valid positive number")

        specs = device.get("specifications")
        if isinstance(specs, str):
            try:
                json.loads(specs)
            except ValueError:
                result.warnings.append(f"Row {row_num}: Specifications is not valid JSON, will be stored as text")

        for flag, column in ROW_FORMULA_FIELDS.items():
            if device.get(flag) is True and not str(device.get(column) or "").strip():
                label = ROW_FORMULA_LABELS[column]
                result.warnings.append(f"Row {row_num}: Dynamic {label} is enabled but {label} formula is empty")

    log_event(
        get_logger(),
        "import_validated",
        {"rows": len(rows), "errors": len(result.errors), "warnings": len(result.warnings)},
    )
    return result


def _template_for_row(template: DeviceTemplate, device: Dict[str, Any]) -> DeviceTemplate:
    overrides = {
        column: GeneratedField(generation_type=GenerationType.DYNAMIC, formula=str(device.get(column) or ""))
        for flag, column in ROW_FORMULA_FIELDS.items()
        if device.get(flag) is True
    }
    if not overrides:
        return template
    return replace(template, properties=list(template.properties), fields={**template.fields, **overrides})


def generate_rows(template: DeviceTemplate, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    logger = get_logger()
    generated: List[Dict[str, Any]] = []
    for index, device in enumerate(rows):
        row_template = _template_for_row(template, device)
        fixed = {name: device.get(name) for name in ("sku", "description", "short_description")}
        fields = generate_device_fields(row_template, device.get("properties", {}), fixed)
        record = {
            "row": index + 2,
            "name": device.get("name"),
            "identity_hash": identity_hash(device.get("name"), device.get("brand"), device.get("model")),
            "fields": fields,
        }
        generated.append(record)
        log_event(logger, "device_generated", {"row": record["row"], "sku": fields.get("sku", "")})
    return generated


def write_import_template(template: DeviceTemplate, path: Path, include_generation_columns: bool = True) -> Path:
    headers = list(BASE_HEADERS)
    sample: List[Any] = list(BASE_SAMPLE)
    if include_generation_columns:
        headers += GENERATION_HEADERS
        sample += GENERATION_SAMPLE

    for prop in template.properties:
        header = prop.label_en or prop.name
        # Labels that shadow a standard column fall back to the property name.
        headers.append(prop.name if header in COLUMN_MAPPING else header)
        if prop.data_type == PropertyType.NUMBER:
            sample.append("10")
        elif prop.data_type.is_enumerated:
            sample.append(prop.options[0].label_en if prop.options else "Option1")
        elif prop.data_type == PropertyType.DYNAMIC_MULTISELECT:
            sample.append("Value1, Value2")
        else:
            sample.append("Sample Value")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame([sample], columns=headers)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
    return path
