"""Formula engine for device-template SKU and description generation."""

from template_formula.calculation import calculate
from template_formula.engine import FormulaEngine, evaluate
from template_formula.properties import FormulaContext, Property, PropertyOption
from template_formula.templates import DeviceTemplate, generate_device_fields
from template_formula.tokens import Token, extract_references, iter_tokens
from template_formula.validation import FormulaValidation, validate_formula

__all__ = [
    "DeviceTemplate",
    "FormulaContext",
    "FormulaEngine",
    "FormulaValidation",
    "Property",
    "PropertyOption",
    "Token",
    "calculate",
    "evaluate",
    "extract_references",
    "generate_device_fields",
    "iter_tokens",
    "validate_formula",
]
