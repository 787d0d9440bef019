"""Numeric evaluation of calculated template properties.

A calculated property carries a formula such as ``{length} * {width} / 1000``.
References are replaced by the numeric value of each property and the
remaining text must be plain arithmetic; it is parsed with :mod:`ast` and
walked node by node, so names, calls and attribute access never execute.
"""

from __future__ import annotations

import ast
import math
import operator
import re
from typing import Any, Callable, Dict, Iterable, List, Type

from template_formula.errors import CalculationError
from template_formula.logging import get_logger
from template_formula.properties import Property, index_properties
from template_formula.tokens import iter_tokens
from template_formula.validation import FormulaValidation, validate_formula

MAX_EXPRESSION_LENGTH = 512
MAX_EXPONENT = 100

_LEADING_NUMBER_RE = re.compile(r"^\s*[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")

_BINARY_OPS: Dict[Type[ast.operator], Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: Dict[Type[ast.unaryop], Callable[[float], float]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def to_number(value: Any) -> float:
    if isinstance(value, (list, tuple)):
        return to_number(value[0]) if value else 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _LEADING_NUMBER_RE.match(value)
        return float(match.group(0)) if match else 0.0
    return 0.0


class ArithmeticEvaluator:
    def evaluate(self, expression: str) -> float:
        expression = (expression or "").strip()
        if not expression:
            raise CalculationError("Empty expression")
        if len(expression) > MAX_EXPRESSION_LENGTH:
            raise CalculationError("Expression too long")
        try:
            tree = ast.parse(expression, mode="eval")
        except SyntaxError as exc:
            raise CalculationError(f"Invalid expression: {exc.msg}") from exc
        return self._eval_node(tree.body)

    def _eval_node(self, node: ast.AST) -> float:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise CalculationError(f"Unsupported constant: {node.value!r}")
            return float(node.value)
        if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
            left = self._eval_node(node.left)
            right = self._eval_node(node.right)
            if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
                raise CalculationError("Exponent too large")
            result = _BINARY_OPS[type(node.op)](left, right)
            if isinstance(result, complex):
                raise CalculationError("Result is not a real number")
            return result
        if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
            return _UNARY_OPS[type(node.op)](self._eval_node(node.operand))
        raise CalculationError(f"Unsupported expression node: {type(node).__name__}")


def _substitute(formula: str, replacement: Callable[[str], str]) -> str:
    pieces: List[str] = []
    cursor = 0
    for token in iter_tokens(formula):
        pieces.append(formula[cursor:token.start])
        pieces.append(replacement(token.name))
        cursor = token.end
    pieces.append(formula[cursor:])
    return "".join(pieces)


def calculate(formula: str, properties: Iterable[Property]) -> float:
    """Evaluate a numeric formula; returns 0 whenever it cannot be computed."""
    if not formula:
        return 0.0
    by_name = index_properties(properties)
    if any(token.name not in by_name for token in iter_tokens(formula)):
        return 0.0

    expression = _substitute(formula, lambda name: f"({to_number(by_name[name].value)!r})")
    if "{" in expression or "}" in expression:
        return 0.0
    try:
        result = ArithmeticEvaluator().evaluate(expression)
    except (CalculationError, ArithmeticError) as exc:
        get_logger().warning("Formula calculation failed: %s (%s)", formula, exc)
        return 0.0
    if math.isnan(result) or math.isinf(result):
        return 0.0
    return round(result, 2)


def validate_calculation(formula: str, known_property_names: Iterable[str]) -> FormulaValidation:
    known = list(known_property_names or [])
    result = validate_formula(formula, known)
    if not result.is_valid or not formula:
        return result
    try:
        ArithmeticEvaluator().evaluate(_substitute(formula, lambda name: "1"))
    except CalculationError:
        return FormulaValidation(is_valid=False, error="Invalid mathematical expression")
    except ArithmeticError:
        # Division by zero with placeholder values is still well-formed.
        pass
    return result
