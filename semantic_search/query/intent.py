"""
Query Intent Classifier

This module assigns a coarse intent category to a query with a small set of
regular-expression rules. The intent only biases ranking weights; it never
filters results.
"""

import logging
import re
from typing import List, Optional, Pattern, Tuple

from ..config.base import IntentCategory
from ..core.models import QueryIntent
from .processor import QueryProcessor

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.8
EXTRA_MATCH_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95
QUOTED_CONFIDENCE = 0.9
GENERAL_CONFIDENCE = 0.5


def _compile(*patterns: str) -> List[Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# Checked in order; the first category with a matching rule wins
INTENT_PATTERNS: List[Tuple[IntentCategory, List[Pattern[str]]]] = [
    (IntentCategory.NAVIGATIONAL, _compile(
        r"^\s*(go to|open|visit)\b",
        r"\b[a-z0-9-]+\.(com|io|ai|net|org|co|dev)\b",
    )),
    (IntentCategory.COMPARISON, _compile(
        r"\bcompare\b",
        r"\bdifference between\b",
        r"\bvs\.?(\s|$)",
        r"\bversus\b",
        r"\bbetter than\b",
    )),
    (IntentCategory.PROVIDER_SEARCH, _compile(
        r"\bwhat\b.*\bservices\b",
        r"\bshow me\b.*\bproviders\b",
        r"\bfind\b.*\b(companies|providers|vendors|agencies|consultants)\b",
        r"\bwho (offers|provides|builds)\b",
    )),
    (IntentCategory.SPECIFIC_NEED, _compile(
        r"\bhelp\b.*\bwith\b",
        r"\bsolve\b.*\bproblem\b",
        r"\bautomate\b.*\bprocess",
        r"\bhow (do|can) (i|we)\b",
    )),
    (IntentCategory.PRODUCT_SEARCH, _compile(
        r"\blooking for\b.*\b(ai|ml|model|tool|platform|solution)s?\b",
        r"\bneed\b.*\bmachine learning\b",
        r"\bwant\b.*\bsolution\b",
        r"\b(tool|platform|software|api)s?\b",
    )),
]

_QUOTED_PHRASE = re.compile(r"\"[^\"]+\"|'[^']+'")


class IntentClassifier:
    """
    Rule-based query intent classifier.

    classify() never raises: any internal failure is logged and reported as
    a general intent with zero confidence.
    """

    def __init__(
        self,
        processor: Optional[QueryProcessor] = None,
        patterns: Optional[List[Tuple[IntentCategory, List[Pattern[str]]]]] = None,
    ):
        self.processor = processor or QueryProcessor()
        self.patterns = patterns if patterns is not None else INTENT_PATTERNS

    def classify(self, text: str) -> QueryIntent:
        """
        Classify a query.

        Args:
            text: Query text, raw or processed

        Returns:
            QueryIntent with category, confidence in [0, 1] and entities
        """
        try:
            return self._classify(text)
        except Exception as e:
            logger.warning(f"Intent classification failed, using general intent: {e}")
            return QueryIntent(category=IntentCategory.GENERAL, confidence=0.0)

    def _classify(self, text: str) -> QueryIntent:
        entities = self.processor.extract_entities(text)

        if _QUOTED_PHRASE.search(text):
            return QueryIntent(IntentCategory.NAVIGATIONAL, QUOTED_CONFIDENCE, entities)

        for category, patterns in self.patterns:
            hits = sum(1 for pattern in patterns if pattern.search(text))
            if hits:
                confidence = min(
                    BASE_CONFIDENCE + EXTRA_MATCH_CONFIDENCE * (hits - 1), MAX_CONFIDENCE
                )
                logger.debug(f"Query intent: {category.value} ({confidence:.2f})")
                return QueryIntent(category, confidence, entities)

        return QueryIntent(IntentCategory.GENERAL, GENERAL_CONFIDENCE, entities)

