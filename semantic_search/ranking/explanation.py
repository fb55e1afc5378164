"""
Result Explanation

This module builds the per-result breakdown attached when a request asks
for explanations: the signal values, their weighted contributions and a
short human-readable account of why the result matched.
"""

import re
from typing import Any, Dict, List, Optional

from ..config.ranking import RankingWeights
from ..search.keyword import searchable_text

HIGH_SIMILARITY = 0.8
GOOD_SIMILARITY = 0.6


def _terms(text: str) -> List[str]:
    return list(dict.fromkeys(re.findall(r"[a-z0-9]+", text.lower())))


def text_match(query_text: str, document: Dict[str, Any]) -> Optional[Dict[str, List[str]]]:
    """
    Query terms found in the document text.

    A partial match is a term whose stem (the term minus up to two trailing
    characters, at least three long) occurs in the document.
    """
    content = searchable_text(document).lower()
    exact, partial = [], []
    for term in _terms(query_text):
        if term in content:
            exact.append(term)
        elif len(term) > 3 and term[:max(3, len(term) - 2)] in content:
            partial.append(term)
    if not exact and not partial:
        return None
    return {"exactMatches": exact, "partialMatches": partial}


def build_explanation(
    query_text: str,
    document: Dict[str, Any],
    signals: Dict[str, float],
    weights: RankingWeights,
    vector_score: Optional[float],
    keyword_score: Optional[float],
    cutoff: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Explain how a result's combined score was produced.

    Args:
        query_text: Processed query text
        document: The result document
        signals: Signal values keyed like RankingWeights.as_dict()
        weights: Weights the score was computed with
        vector_score: Similarity from the vector path, None if it did not find the document
        keyword_score: Normalized BM25 score, None if the keyword path did not find it
        cutoff: Combined-score threshold the result had to clear, None if none applied

    Returns:
        Explanation dictionary in wire form
    """
    weight_map = weights.as_dict()
    contributions = {
        name: round(weight_map[name] * signals.get(name, 0.0), 6) for name in weight_map
    }
    matches = text_match(query_text, document)

    factors: List[str] = []
    if matches and matches["exactMatches"]:
        factors.append(f"Exact matches: {', '.join(matches['exactMatches'])}")
    if vector_score is not None:
        if vector_score > HIGH_SIMILARITY:
            factors.append("High semantic similarity")
        elif vector_score > GOOD_SIMILARITY:
            factors.append("Good semantic similarity")
    if signals.get("category", 0.0) > 0:
        factors.append("Category match")
    tags = [str(tag).lower() for tag in document.get("tags") or []]
    query_terms = _terms(query_text)
    if any(term in tag for tag in tags for term in query_terms):
        factors.append("Tag relevance")

    strongest = max(contributions, key=lambda name: (contributions[name], name))
    summary = (
        f"Ranked mainly by {strongest} relevance"
        if contributions[strongest] > 0 else "No strong ranking signal"
    )

    return {
        "vectorScore": vector_score,
        "keywordScore": keyword_score,
        "threshold": cutoff,
        "signals": {name: round(value, 6) for name, value in signals.items()},
        "contributions": contributions,
        "weights": {name: round(value, 4) for name, value in weight_map.items()},
        "matchingFactors": factors,
        "textMatch": matches,
        "summary": summary,
    }
