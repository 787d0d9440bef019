from __future__ import annotations

from typing import Any, Optional

from template_formula.properties import FormulaContext, Property

MULTI_VALUE_SEPARATOR = ", "


def resolve(prop: Optional[Property], suffix: Optional[str], context: FormulaContext) -> str:
    """Return the text a ``{name}`` / ``{name.suffix}`` token renders to.

    Gaps (unknown property, no value yet, no matching option for an explicit
    suffix) render as an empty string so partially filled formulas still
    produce output.

    List values resolve item by item and are joined with ``", "``. A basic
    reference keeps the raw text of items that match no option, while an
    explicit suffix drops them, the same as for a single value. A list whose
    items all miss renders as ``""`` under a suffix.
    """
    if prop is None or prop.value is None:
        return ""
    if prop.is_multi_valued:
        parts = [_resolve_item(prop, item, suffix, context) for item in prop.value]
        return MULTI_VALUE_SEPARATOR.join(part for part in parts if part)
    return _resolve_item(prop, prop.value, suffix, context)


def _resolve_item(prop: Property, item: Any, suffix: Optional[str], context: FormulaContext) -> str:
    if item is None:
        return ""
    raw = str(item)
    if not prop.is_enumerated:
        return raw

    option = prop.find_option(item)
    if suffix is None:
        if option is None:
            return raw
        if context == FormulaContext.SKU:
            return option.code or raw
        if context == FormulaContext.DESCRIPTION_AR:
            return option.label_ar or option.label_en or raw
        return option.label_en or raw

    if option is None:
        return ""
    if suffix == "code":
        return option.code
    if suffix == "label_en":
        return option.label_en
    if suffix == "label_ar":
        return option.label_ar or option.label_en
    return ""
