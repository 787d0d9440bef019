"""Caller-side helpers for formula previews.

The engine treats values as opaque; rendering booleans as ``Yes``/``No``,
inventing sample values for an empty template and guarding evaluation so the
editor never shows a raw failure all happen here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from template_formula.config import (
    DEFAULT_EMPTY_FORMULA_MESSAGE,
    DEFAULT_PREVIEW_PLACEHOLDER,
    Settings,
)
from template_formula.definitions import PropertyDefinition, PropertyType
from template_formula.engine import ContextLike, evaluate
from template_formula.logging import get_logger, log_event
from template_formula.properties import FormulaContext, Property, PropertyOption

PREVIEW_PLACEHOLDER = DEFAULT_PREVIEW_PLACEHOLDER

_TRUE_STRINGS = {"true", "1", "yes", "y"}

_DEFAULT_SAMPLE_OPTIONS = (PropertyOption(code="opt1", label_en="Option 1", label_ar="خيار 1"),)


def boolean_value(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def display_value(value: Any, data_type: PropertyType) -> Any:
    if data_type != PropertyType.BOOLEAN:
        return value
    flag = boolean_value(value)
    if flag is None:
        return None
    return "Yes" if flag else "No"


def split_multi_value(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


def properties_from_values(
    definitions: Iterable[PropertyDefinition], values: Mapping[str, Any]
) -> List[Property]:
    properties: List[Property] = []
    for definition in definitions:
        value = values.get(definition.name)
        if definition.data_type == PropertyType.DYNAMIC_MULTISELECT:
            value = split_multi_value(value)
        value = display_value(value, definition.data_type)
        properties.append(Property(name=definition.name, value=value, options=tuple(definition.options)))
    return properties


def _sample_value(definition: PropertyDefinition) -> Any:
    if definition.data_type in (PropertyType.NUMBER, PropertyType.CALCULATED):
        return 100
    if definition.data_type.is_enumerated:
        options = definition.options or _DEFAULT_SAMPLE_OPTIONS
        return options[0].label_en or options[0].code
    if definition.data_type == PropertyType.DYNAMIC_MULTISELECT:
        return ["Value1", "Value2", "Value3"]
    if definition.data_type == PropertyType.TEXT:
        return "Sample Text"
    if definition.data_type == PropertyType.BOOLEAN:
        return "Yes"
    return "Sample"


def sample_properties(definitions: Iterable[PropertyDefinition]) -> List[Property]:
    samples: List[Property] = []
    for definition in definitions:
        options = tuple(definition.options)
        if definition.data_type.is_enumerated and not options:
            options = _DEFAULT_SAMPLE_OPTIONS
        samples.append(Property(name=definition.name, value=_sample_value(definition), options=options))
    return samples


def render_preview(
    formula: str,
    properties: Iterable[Property],
    context: ContextLike = FormulaContext.DESCRIPTION_EN,
    settings: Optional[Settings] = None,
) -> str:
    placeholder = settings.preview_placeholder if settings else PREVIEW_PLACEHOLDER
    if not formula:
        return settings.empty_formula_message if settings else DEFAULT_EMPTY_FORMULA_MESSAGE
    try:
        result = evaluate(formula, properties, context)
    except Exception as exc:
        logger = get_logger()
        log_event(logger, "preview_failed", {"formula": formula, "error": str(exc)}, level=logging.WARNING)
        return placeholder
    return result or placeholder


def preview_for_definitions(
    formula: str,
    definitions: Iterable[PropertyDefinition],
    context: ContextLike = FormulaContext.DESCRIPTION_EN,
    values: Optional[Dict[str, Any]] = None,
    settings: Optional[Settings] = None,
) -> str:
    definitions = list(definitions)
    if values:
        properties = properties_from_values(definitions, values)
    else:
        properties = sample_properties(definitions)
    return render_preview(formula, properties, context, settings)
