"""
Query Classifier

Heuristic mapping of a raw search term to a concrete search mode:
- Proper-name shapes route to name matching
- Skill, role, technology and seniority vocabulary routes to semantic search
- Long or connector-joined descriptive queries route to semantic search

Every rule is a pure string predicate. The vocabulary and name-shape patterns
live in a versioned JSON resource so they can change without code changes.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from importlib import resources
from typing import Any, Dict, List, Optional, Pattern, Tuple

import structlog

from candidate_search.domain.entities.search import SearchMode

logger = structlog.get_logger(__name__)

RULES_RESOURCE = "classifier_rules.json"


@dataclass(frozen=True)
class ClassifierRules:
    """Compiled classifier rules."""

    version: str
    name_patterns: Tuple[Tuple[str, Pattern[str]], ...]
    keywords: Tuple[str, ...]
    connectors: Tuple[str, ...]
    min_descriptive_tokens: int = 3

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassifierRules":
        raw_keywords = data.get("keywords", [])
        if isinstance(raw_keywords, dict):
            flattened: List[str] = []
            for group in raw_keywords.values():
                flattened.extend(group)
            raw_keywords = flattened

        return cls(
            version=str(data.get("version", "unversioned")),
            name_patterns=tuple(
                (entry["name"], re.compile(entry["pattern"]))
                for entry in data.get("name_patterns", [])
            ),
            keywords=tuple(sorted({keyword.lower() for keyword in raw_keywords if keyword})),
            connectors=tuple(connector.lower() for connector in data.get("connectors", [])),
            min_descriptive_tokens=int(data.get("min_descriptive_tokens", 3)),
        )

    @classmethod
    def load_default(cls) -> "ClassifierRules":
        """Load the rules bundled with the package."""
        text = (
            resources.files("candidate_search.application.search")
            .joinpath(RULES_RESOURCE)
            .read_text(encoding="utf-8")
        )
        rules = cls.from_dict(json.loads(text))
        logger.debug(
            "Classifier rules loaded",
            version=rules.version,
            name_patterns=len(rules.name_patterns),
            keywords=len(rules.keywords),
        )
        return rules


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one term, with the rule that decided it."""

    mode: SearchMode
    rule: str
    detail: Optional[str] = None


def name_shape(term: str, rules: ClassifierRules) -> Optional[str]:
    """Name of the first name-shape pattern ``term`` matches, if any."""
    for name, pattern in rules.name_patterns:
        if pattern.match(term):
            return name
    return None


def vocabulary_keyword(term: str, rules: ClassifierRules) -> Optional[str]:
    """First vocabulary keyword contained in the lower-cased term."""
    lowered = term.lower()
    for keyword in rules.keywords:
        if keyword in lowered:
            return keyword
    return None


def is_descriptive(term: str, rules: ClassifierRules) -> bool:
    """Long queries and connector phrases read as descriptions."""
    if len(term.split()) >= rules.min_descriptive_tokens:
        return True
    lowered = f" {term.lower()} "
    return any(connector in lowered for connector in rules.connectors)


class QueryClassifier:
    """Pure, deterministic classifier; never raises on any input."""

    def __init__(self, rules: Optional[ClassifierRules] = None):
        self.rules = rules or _default_rules()

    @property
    def version(self) -> str:
        return self.rules.version

    def explain(self, term: Optional[str]) -> Classification:
        stripped = (term or "").strip()
        if not stripped:
            return Classification(SearchMode.SEMANTIC, "empty")

        shape = name_shape(stripped, self.rules)
        if shape:
            return Classification(SearchMode.NAME_MATCH, "name_shape", shape)

        keyword = vocabulary_keyword(stripped, self.rules)
        if keyword:
            return Classification(SearchMode.SEMANTIC, "vocabulary", keyword)

        if is_descriptive(stripped, self.rules):
            return Classification(SearchMode.SEMANTIC, "descriptive")

        return Classification(SearchMode.SEMANTIC, "default")

    def classify(self, term: Optional[str]) -> SearchMode:
        return self.explain(term).mode


_DEFAULT_RULES: Optional[ClassifierRules] = None


def _default_rules() -> ClassifierRules:
    global _DEFAULT_RULES
    if _DEFAULT_RULES is None:
        _DEFAULT_RULES = ClassifierRules.load_default()
    return _DEFAULT_RULES


__all__ = [
    "ClassifierRules",
    "Classification",
    "QueryClassifier",
    "name_shape",
    "vocabulary_keyword",
    "is_descriptive",
]
