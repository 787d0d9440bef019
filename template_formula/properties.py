from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

PropertyScalar = Union[str, int, float, bool, None]
PropertyValue = Union[PropertyScalar, List[str]]


class FormulaContext(str, Enum):
    SKU = "sku"
    DESCRIPTION_EN = "description_en"
    DESCRIPTION_AR = "description_ar"

    @classmethod
    def from_str(cls, value: str) -> "FormulaContext":
        for member in cls:
            if member.value.lower() == (value or "").lower():
                return member
        raise ValueError(f"Unknown formula context '{value}' (expected one of: {', '.join(m.value for m in cls)})")


@dataclass(frozen=True)
class PropertyOption:
    code: str
    label_en: str = ""
    label_ar: str = ""

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "PropertyOption":
        if not isinstance(mapping, dict):
            raise TypeError(f"Property option must be a mapping with a code, got {mapping!r}")
        return cls(
            code=str(mapping.get("code") or ""),
            label_en=str(mapping.get("label_en") or ""),
            label_ar=str(mapping.get("label_ar") or ""),
        )

    def matches(self, value: Any) -> bool:
        text = str(value)
        return text in (self.code, self.label_en) or (bool(self.label_ar) and text == self.label_ar)


@dataclass(frozen=True)
class Property:
    name: str
    value: PropertyValue = None
    options: Sequence[PropertyOption] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "Property":
        options = tuple(PropertyOption.from_mapping(opt) for opt in mapping.get("options") or [])
        return cls(name=str(mapping["name"]), value=mapping.get("value"), options=options)

    @property
    def is_enumerated(self) -> bool:
        return bool(self.options)

    @property
    def is_multi_valued(self) -> bool:
        return isinstance(self.value, (list, tuple))

    def find_option(self, value: Any) -> Optional[PropertyOption]:
        for option in self.options:
            if option.matches(value):
                return option
        return None


def index_properties(properties: Iterable[Property]) -> Dict[str, Property]:
    # First definition of a name wins.
    by_name: Dict[str, Property] = {}
    for prop in properties:
        by_name.setdefault(prop.name, prop)
    return by_name
