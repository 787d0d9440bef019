from __future__ import annotations


class FormulaError(Exception):
    """Base class for errors raised by template_formula."""


class TemplateConfigError(FormulaError):
    pass


class DeviceImportError(FormulaError):
    pass


class CalculationError(FormulaError):
    pass
