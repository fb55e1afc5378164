"""
Query Processor

This module normalizes raw query text before it reaches the search paths:
lower-casing, correction of common AI/ML misspellings, synonym expansion for
well-known abbreviations and extraction of simple entities.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)

SPELLING_CORRECTIONS: Dict[str, str] = {
    "machien": "machine",
    "leraning": "learning",
    "artifical": "artificial",
    "inteligence": "intelligence",
    "algoritm": "algorithm",
    "chatbots": "chatbot",
    "analystics": "analytics",
    "prediciton": "prediction",
    "recomendation": "recommendation",
}

SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "ai": ("artificial intelligence", "machine learning", "ml"),
    "nlp": ("natural language processing", "text analysis", "language ai"),
    "ml": ("machine learning", "artificial intelligence", "ai"),
    "computer vision": ("image recognition", "visual ai", "image analysis"),
    "chatbot": ("conversational ai", "virtual assistant", "chat ai"),
}

TECHNOLOGY_TERMS = ("ai", "ml", "machine learning", "nlp", "computer vision", "chatbot", "deep learning")
INDUSTRY_TERMS = ("healthcare", "finance", "retail", "manufacturing", "education")
USE_CASE_TERMS = ("automation", "prediction", "analysis", "recommendation", "classification")

_BUDGET_PATTERN = re.compile(r"\$([0-9][0-9,]*)")


def _word_pattern(term: str) -> "re.Pattern[str]":
    return re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)


@dataclass(frozen=True)
class ProcessedQuery:
    """Result of query processing."""
    original: str
    corrected: str
    expanded: str
    corrections: Tuple[Tuple[str, str], ...] = ()
    expansions: Tuple[str, ...] = ()
    entities: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Text handed to the embedding and keyword paths."""
        return self.expanded


class QueryProcessor:
    """
    Normalizes and enriches query text.

    Args:
        enable_expansion: Append synonyms for known abbreviations
        max_expansions: Maximum synonyms appended per matched term
    """

    def __init__(self, enable_expansion: bool = True, max_expansions: int = 3):
        self.enable_expansion = enable_expansion
        self.max_expansions = max_expansions
        self._corrections = [
            (typo, fix, _word_pattern(typo)) for typo, fix in SPELLING_CORRECTIONS.items()
        ]
        self._synonyms = [
            (term, synonyms, _word_pattern(term)) for term, synonyms in SYNONYMS.items()
        ]

    def process(self, text: str) -> ProcessedQuery:
        """
        Process raw query text.

        Args:
            text: The query as submitted

        Returns:
            ProcessedQuery with the corrected and expanded forms
        """
        normalized = " ".join(text.strip().lower().split())
        corrected, corrections = self.correct_spelling(normalized)
        expanded, expansions = (
            self.expand_synonyms(corrected) if self.enable_expansion else (corrected, ())
        )
        if corrections:
            logger.debug(f"Corrected query spelling: {corrections}")
        return ProcessedQuery(
            original=text,
            corrected=corrected,
            expanded=expanded,
            corrections=corrections,
            expansions=expansions,
            entities=self.extract_entities(corrected),
        )

    def correct_spelling(self, text: str) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        corrections = []
        for typo, fix, pattern in self._corrections:
            if pattern.search(text):
                text = pattern.sub(fix, text)
                corrections.append((typo, fix))
        return text, tuple(corrections)

    def expand_synonyms(self, text: str) -> Tuple[str, Tuple[str, ...]]:
        """Append synonyms for every known term in the text, skipping repeats."""
        added: List[str] = []
        for term, synonyms, pattern in self._synonyms:
            if not pattern.search(text):
                continue
            for synonym in synonyms[:self.max_expansions]:
                if synonym in added or _word_pattern(synonym).search(text):
                    continue
                added.append(synonym)
        if not added:
            return text, ()
        return f"{text} {' '.join(added)}", tuple(added)

    def extract_entities(self, text: str) -> Dict[str, Any]:
        """
        Extract technologies, industries, use cases and a dollar budget.

        Returns:
            Dictionary with technologies, industries and useCases lists, and
            budget when the query names an amount like "$5,000"
        """
        lowered = text.lower()
        entities: Dict[str, Any] = {
            "technologies": [t for t in TECHNOLOGY_TERMS if _word_pattern(t).search(lowered)],
            "industries": [i for i in INDUSTRY_TERMS if i in lowered],
            "useCases": [u for u in USE_CASE_TERMS if u in lowered],
        }
        budget = _BUDGET_PATTERN.search(text)
        if budget:
            entities["budget"] = int(budget.group(1).replace(",", ""))
        return entities

    def spelling_suggestion(self, text: str) -> str:
        """The corrected query, or an empty string when nothing was misspelled."""
        normalized = " ".join(text.strip().lower().split())
        corrected, corrections = self.correct_spelling(normalized)
        return corrected if corrections else ""
