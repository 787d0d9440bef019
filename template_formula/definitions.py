from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from template_formula.properties import PropertyOption


class PropertyType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    MULTISELECT = "multiselect"
    DYNAMIC_MULTISELECT = "dynamic_multiselect"
    DATE = "date"
    COLOR = "color"
    IMAGE = "image"
    CALCULATED = "calculated"

    @classmethod
    def from_str(cls, value: Optional[str]) -> "PropertyType":
        for member in cls:
            if member.value == (value or "").strip().lower():
                return member
        return cls.TEXT

    @property
    def is_enumerated(self) -> bool:
        return self in (PropertyType.SELECT, PropertyType.MULTISELECT)


@dataclass
class PropertyDefinition:
    name: str
    label_en: str = ""
    label_ar: str = ""
    data_type: PropertyType = PropertyType.TEXT
    unit: str = ""
    required: bool = False
    is_identifier: bool = False
    is_device_name: bool = False
    sort_order: int = 0
    options: List[PropertyOption] = field(default_factory=list)
    formula: str = ""
    depends_on: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "PropertyDefinition":
        if not isinstance(mapping, dict):
            raise TypeError(f"Property definition must be a mapping, got {mapping!r}")
        # Accepts both the template-record column names and the short schema keys.
        name = mapping.get("name") or mapping.get("property_name")
        if not name:
            raise ValueError("Property definition is missing a name")
        return cls(
            name=str(name),
            label_en=str(mapping.get("label_en") or name),
            label_ar=str(mapping.get("label_ar") or ""),
            data_type=PropertyType.from_str(mapping.get("type") or mapping.get("property_type")),
            unit=str(mapping.get("unit") or mapping.get("property_unit") or ""),
            required=bool(mapping.get("required", mapping.get("is_required", False))),
            is_identifier=bool(mapping.get("is_identifier", False)),
            is_device_name=bool(mapping.get("is_device_name", False)),
            sort_order=int(mapping.get("sort_order") or 0),
            options=[
                PropertyOption.from_mapping(opt)
                for opt in (mapping.get("options") or mapping.get("property_options") or [])
            ],
            formula=str(mapping.get("formula") or ""),
            depends_on=list(mapping.get("depends_on") or mapping.get("depends_on_properties") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "label_en": self.label_en,
            "label_ar": self.label_ar,
            "type": self.data_type.value,
            "unit": self.unit,
            "required": self.required,
            "is_identifier": self.is_identifier,
            "is_device_name": self.is_device_name,
            "sort_order": self.sort_order,
            "options": [
                {"code": opt.code, "label_en": opt.label_en, "label_ar": opt.label_ar} for opt in self.options
            ],
            "formula": self.formula,
            "depends_on": list(self.depends_on),
        }
