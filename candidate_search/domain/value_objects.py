"""Value objects shared by the search strategies and the index stores."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Tuple

_FRAGMENT_PATTERN = re.compile(r"[^\W_]+", re.UNICODE)


def lexemes(text: str) -> List[str]:
    """Lower-cased alphanumeric runs of ``text`` in order of appearance."""
    if not text:
        return []
    return _FRAGMENT_PATTERN.findall(text.lower())


@dataclass(frozen=True)
class PrefixQuery:
    """Conjunctive prefix query built from a free-text term.

    Each whitespace token becomes one unit; punctuation inside a token splits
    it into fragments that must all match (``O'Brien`` -> ``o`` AND ``brien``).
    Tokens without any alphanumeric content are dropped, so tsquery operator
    characters never reach the engine.
    """

    tokens: Tuple[str, ...]
    units: Tuple[Tuple[str, ...], ...]

    @classmethod
    def from_term(cls, term: str) -> "PrefixQuery":
        tokens: List[str] = []
        units: List[Tuple[str, ...]] = []
        for token in (term or "").split():
            fragments = tuple(lexemes(token))
            if not fragments:
                continue
            tokens.append(token)
            units.append(fragments)
        return cls(tokens=tuple(tokens), units=tuple(units))

    @property
    def is_empty(self) -> bool:
        return not self.units

    def to_tsquery(self) -> str:
        """Render as a PostgreSQL ``to_tsquery`` expression."""
        rendered = []
        for fragments in self.units:
            parts = [f"{fragment}:*" for fragment in fragments]
            if len(parts) == 1:
                rendered.append(parts[0])
            else:
                rendered.append("(" + " & ".join(parts) + ")")
        return " & ".join(rendered)

    def matches(self, terms: Iterable[str]) -> bool:
        """True when every fragment prefixes at least one of ``terms``."""
        if self.is_empty:
            return False
        vocabulary = list(terms)
        return all(
            any(term.startswith(fragment) for term in vocabulary)
            for fragments in self.units
            for fragment in fragments
        )

    def matched_terms(self, terms: Iterable[str]) -> List[str]:
        """Indexed terms hit by at least one fragment, sorted."""
        hits = set()
        for term in terms:
            for fragments in self.units:
                if any(term.startswith(fragment) for fragment in fragments):
                    hits.add(term)
                    break
        return sorted(hits)


__all__ = ["PrefixQuery", "lexemes"]
