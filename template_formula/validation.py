from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from template_formula.tokens import TOKEN_RE

# Anything between a matching pair of braces, token or not.
_BRACE_GROUP_RE = re.compile(r"\{([^{}]*)\}")


@dataclass
class ValidationIssue:
    check_id: str
    message: str
    severity: str = "error"


@dataclass(frozen=True)
class FormulaValidation:
    is_valid: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {"is_valid": self.is_valid, "error": self.error}


VALID = FormulaValidation(is_valid=True)


def _reference_error(group: str, known: set) -> Optional[str]:
    if not group.strip():
        return "Empty property reference"
    name = group.split(".", 1)[0]
    if TOKEN_RE.fullmatch("{" + group + "}") is None:
        # Spaces, dashes or an unsupported suffix.
        return f"Unknown property: {group}"
    if name not in known:
        return f"Unknown property: {name}"
    return None


def _brace_error(formula: str) -> Optional[str]:
    depth = 0
    for pos, ch in enumerate(formula):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                return f"Unmatched '}}' at position {pos}"
    if depth > 0:
        return "Unterminated '{' in formula"
    return None


def validate_formula(formula: str, known_property_names: Iterable[str]) -> FormulaValidation:
    """Check a formula against the property names of its template.

    Stops at the first problem: references are reported before brace
    balance. A braced group that is not a well-formed ``{name}`` or
    ``{name.suffix}`` counts as an unknown reference. Never raises; the
    result is shown inline next to the formula.
    """
    if not formula:
        return VALID

    known = set(known_property_names or [])
    for match in _BRACE_GROUP_RE.finditer(formula):
        error = _reference_error(match.group(1), known)
        if error:
            return FormulaValidation(is_valid=False, error=error)

    error = _brace_error(formula)
    if error:
        return FormulaValidation(is_valid=False, error=error)
    return VALID
