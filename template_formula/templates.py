from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from template_formula.calculation import calculate, validate_calculation
from template_formula.config import load_yaml
from template_formula.definitions import PropertyDefinition, PropertyType
from template_formula.engine import FormulaEngine
from template_formula.errors import TemplateConfigError
from template_formula.logging import get_logger, log_event
from template_formula.preview import boolean_value, properties_from_values
from template_formula.properties import FormulaContext, Property
from template_formula.validation import ValidationIssue, validate_formula


class GenerationType(str, Enum):
    FIXED = "fixed"
    DYNAMIC = "dynamic"

    @classmethod
    def from_str(cls, value: Optional[str]) -> "GenerationType":
        if (value or "").strip().lower() == cls.DYNAMIC.value:
            return cls.DYNAMIC
        return cls.FIXED


GENERATED_FIELDS = ("sku", "description", "short_description", "description_ar", "short_description_ar")

FIELD_CONTEXTS: Dict[str, FormulaContext] = {
    "sku": FormulaContext.SKU,
    "description": FormulaContext.DESCRIPTION_EN,
    "short_description": FormulaContext.DESCRIPTION_EN,
    "description_ar": FormulaContext.DESCRIPTION_AR,
    "short_description_ar": FormulaContext.DESCRIPTION_AR,
}


@dataclass
class GeneratedField:
    generation_type: GenerationType = GenerationType.FIXED
    formula: str = ""

    @property
    def is_dynamic(self) -> bool:
        return self.generation_type == GenerationType.DYNAMIC


@dataclass
class DeviceTemplate:
    name: str
    category: str
    label_ar: str = ""
    description: str = ""
    properties: List[PropertyDefinition] = field(default_factory=list)
    fields: Dict[str, GeneratedField] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.properties.sort(key=lambda prop: prop.sort_order)
        for name in GENERATED_FIELDS:
            self.fields.setdefault(name, GeneratedField())

    @staticmethod
    def load(path: Path) -> "DeviceTemplate":
        template = DeviceTemplate.from_mapping(load_yaml(path))
        log_event(get_logger(), "template_loaded", {"template": template.name, "path": str(path)}, level=logging.DEBUG)
        return template

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "DeviceTemplate":
        name = str(data.get("name") or "").strip()
        category = str(data.get("category") or "").strip()
        if not name:
            raise TemplateConfigError("Template name is required")
        if not category:
            raise TemplateConfigError(f"Template '{name}' is missing a category")

        raw_properties = data.get("properties") or data.get("properties_schema") or []
        try:
            properties = [PropertyDefinition.from_mapping(item) for item in raw_properties]
        except (TypeError, ValueError) as exc:
            raise TemplateConfigError(f"Template '{name}': {exc}") from exc

        fields: Dict[str, GeneratedField] = {}
        nested = data.get("fields") or {}
        if not isinstance(nested, dict):
            raise TemplateConfigError(f"Template '{name}': fields must be a mapping")
        for field_name in GENERATED_FIELDS:
            entry = nested.get(field_name) or {}
            if not isinstance(entry, dict):
                raise TemplateConfigError(f"Template '{name}': field '{field_name}' must be a mapping")
            # Flat record columns: sku_generation_type / sku_formula
            fields[field_name] = GeneratedField(
                generation_type=GenerationType.from_str(
                    entry.get("generation_type") or data.get(f"{field_name}_generation_type")
                ),
                formula=str(entry.get("formula") or data.get(f"{field_name}_formula") or ""),
            )

        return DeviceTemplate(
            name=name,
            category=category,
            label_ar=str(data.get("label_ar") or ""),
            description=str(data.get("description") or ""),
            properties=properties,
            fields=fields,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "label_ar": self.label_ar,
            "description": self.description,
            "properties": [prop.to_dict() for prop in self.properties],
            "fields": {
                name: {"generation_type": entry.generation_type.value, "formula": entry.formula}
                for name, entry in self.fields.items()
            },
        }

    @property
    def property_names(self) -> List[str]:
        return [prop.name for prop in self.properties]

    @property
    def identifier_property(self) -> Optional[str]:
        for prop in self.properties:
            if prop.is_identifier:
                return prop.name
        return None

    def get_property(self, name: str) -> Optional[PropertyDefinition]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def validate(self) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        names = self.property_names

        seen = set()
        for prop in self.properties:
            if prop.name in seen:
                issues.append(ValidationIssue(check_id=f"property:{prop.name}", message="Duplicate property name"))
            seen.add(prop.name)
            if prop.formula:
                result = validate_calculation(prop.formula, names)
                if not result.is_valid:
                    issues.append(ValidationIssue(check_id=f"property:{prop.name}", message=result.error or ""))
            elif prop.data_type == PropertyType.CALCULATED:
                issues.append(
                    ValidationIssue(
                        check_id=f"property:{prop.name}",
                        message="Calculated property has no formula",
                        severity="warning",
                    )
                )

        for field_name in GENERATED_FIELDS:
            generated = self.fields[field_name]
            if not generated.is_dynamic:
                continue
            if not generated.formula.strip():
                issues.append(
                    ValidationIssue(
                        check_id=f"field:{field_name}",
                        message=f"Dynamic {field_name} is enabled but its formula is empty",
                        severity="warning",
                    )
                )
                continue
            result = validate_formula(generated.formula, names)
            if not result.is_valid:
                issues.append(ValidationIssue(check_id=f"field:{field_name}", message=result.error or ""))
        return issues


def _calculation_input(definition: PropertyDefinition, value: Any) -> Any:
    if definition.data_type == PropertyType.BOOLEAN:
        return boolean_value(value)
    return value


def compute_calculated_values(template: DeviceTemplate, values: Mapping[str, Any]) -> Dict[str, Any]:
    resolved: Dict[str, Any] = dict(values)
    for prop in template.properties:
        if prop.data_type != PropertyType.CALCULATED or not prop.formula:
            continue
        # Raw inputs rather than display text. Earlier calculated properties are visible to later ones.
        snapshot = [
            Property(
                name=definition.name,
                value=_calculation_input(definition, resolved.get(definition.name)),
                options=tuple(definition.options),
            )
            for definition in template.properties
        ]
        result = calculate(prop.formula, snapshot)
        resolved[prop.name] = int(result) if float(result).is_integer() else result
    return resolved


def generate_device_fields(
    template: DeviceTemplate,
    values: Mapping[str, Any],
    fixed_values: Optional[Mapping[str, Any]] = None,
) -> Dict[str, str]:
    fixed_values = fixed_values or {}
    resolved = compute_calculated_values(template, values)
    engine = FormulaEngine(properties_from_values(template.properties, resolved))

    generated: Dict[str, str] = {}
    for field_name in GENERATED_FIELDS:
        entry = template.fields[field_name]
        if entry.is_dynamic:
            generated[field_name] = engine.evaluate(entry.formula, FIELD_CONTEXTS[field_name])
        else:
            fixed = fixed_values.get(field_name)
            generated[field_name] = "" if fixed is None else str(fixed)
    return generated


def identity_hash(name: Optional[str], brand: Optional[str] = None, model: Optional[str] = None) -> str:
    seed = "|".join((part or "").strip().lower() for part in (name, brand, model))
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()


def list_templates(templates_dir: Path) -> Dict[str, Path]:
    found: Dict[str, Path] = {}
    if not templates_dir.exists():
        return found
    for path in sorted(templates_dir.glob("*.y*ml")):
        found[path.stem] = path
    return found
