"""
Result Diversification

Round-robin interleaving of results across providers so a single provider
cannot fill a page.
"""

from collections import OrderedDict
from typing import List, Sequence

from ..core.models import RankedResult


def diversity_key(result: RankedResult) -> str:
    """Provider of a result, falling back to its category."""
    document = result.document
    return str(document.get("providerId") or document.get("category") or "")


def diversify(results: Sequence[RankedResult]) -> List[RankedResult]:
    """
    Interleave results round-robin by provider.

    Groups are visited in order of their best-ranked member and each group
    keeps its internal order, so the output is a permutation of the input.
    """
    groups: "OrderedDict[str, List[RankedResult]]" = OrderedDict()
    for result in results:
        groups.setdefault(diversity_key(result), []).append(result)

    interleaved: List[RankedResult] = []
    depth = 0
    while len(interleaved) < len(results):
        for members in groups.values():
            if depth < len(members):
                interleaved.append(members[depth])
        depth += 1
    return interleaved


def diversify_window(
    results: Sequence[RankedResult], offset: int, limit: int
) -> List[RankedResult]:
    """Diversify only the page window [offset, offset + limit)."""
    window = diversify(results[offset:offset + limit])
    return list(results[:offset]) + window + list(results[offset + limit:])
