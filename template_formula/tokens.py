from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional

SUFFIXES = ("code", "label_en", "label_ar")

TOKEN_RE = re.compile(r"\{([A-Za-z0-9_]+)(?:\.(code|label_en|label_ar))?\}")


@dataclass(frozen=True)
class Token:
    raw: str
    start: int
    end: int
    name: str
    suffix: Optional[str] = None


def iter_tokens(formula: str) -> Iterator[Token]:
    """Yield the placeholders of ``formula`` from left to right.

    Anything that does not match ``{name}`` or ``{name.suffix}`` is not a
    token and is left for the caller to copy through as literal text.
    """
    for match in TOKEN_RE.finditer(formula or ""):
        yield Token(
            raw=match.group(0),
            start=match.start(),
            end=match.end(),
            name=match.group(1),
            suffix=match.group(2),
        )


def extract_references(formula: str) -> List[str]:
    return [token.name for token in iter_tokens(formula)]
