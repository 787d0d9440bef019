from __future__ import annotations

from typing import Iterable, List, Union

from template_formula.properties import FormulaContext, Property, index_properties
from template_formula.resolver import resolve
from template_formula.tokens import Token, iter_tokens

ContextLike = Union[FormulaContext, str]


def as_context(context: ContextLike) -> FormulaContext:
    if isinstance(context, FormulaContext):
        return context
    return FormulaContext.from_str(context)


class FormulaEngine:
    def __init__(self, properties: Iterable[Property]):
        self.properties = index_properties(properties)

    def evaluate(self, formula: str, context: ContextLike = FormulaContext.DESCRIPTION_EN) -> str:
        if not formula:
            return ""
        ctx = as_context(context)

        pieces: List[str] = []
        cursor = 0
        for token in iter_tokens(formula):
            pieces.append(formula[cursor:token.start])
            pieces.append(self._resolve_token(token, ctx))
            cursor = token.end
        pieces.append(formula[cursor:])
        return "".join(pieces)

    def _resolve_token(self, token: Token, context: FormulaContext) -> str:
        return resolve(self.properties.get(token.name), token.suffix, context)


def evaluate(formula: str, properties: Iterable[Property], context: ContextLike = FormulaContext.DESCRIPTION_EN) -> str:
    return FormulaEngine(properties).evaluate(formula, context)
