"""
BM25 Scorer

This module provides an implementation of the BM25 (Best Matching 25)
ranking function used by the keyword search path. Corpus statistics are
computed over exactly the population being scored, so filtered searches
rank against the filtered catalog.
"""

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BM25Config:
    """
    Configuration for BM25 scoring.

    Attributes:
        k1: Term frequency saturation parameter (typical range: 1.2-2.0)
        b: Length normalization parameter (0 = no normalization, 1 = full normalization)
        min_term_length: Minimum length of tokens to consider
        max_term_length: Maximum length of tokens to consider
        enable_stopwords: Whether to filter stopwords
        custom_stopwords: Optional custom stopword set
        idf_smoothing: Whether to use smoothed IDF calculation
    """
    k1: float = 1.5
    b: float = 0.75
    min_term_length: int = 2
    max_term_length: int = 50
    enable_stopwords: bool = True
    custom_stopwords: Optional[FrozenSet[str]] = None
    idf_smoothing: bool = True

    def __post_init__(self):
        """Validate BM25 configuration parameters."""
        if self.k1 <= 0:
            raise ValueError(f"k1 must be positive, got {self.k1}")
        if not 0 <= self.b <= 1:
            raise ValueError(f"b must be between 0 and 1, got {self.b}")
        if self.min_term_length < 1:
            raise ValueError(f"min_term_length must be at least 1, got {self.min_term_length}")
        if self.max_term_length < self.min_term_length:
            raise ValueError("max_term_length must not be smaller than min_term_length")


class BM25Scorer:
    """
    BM25 relevance scorer over an ad-hoc document population.

    BM25 ranks documents by query term frequency, saturating repeated terms
    and normalizing by document length, weighted by inverse document
    frequency so rare terms count more than common ones.
    """

    # Common English stopwords
    DEFAULT_STOPWORDS = frozenset({
        'a', 'an', 'and', 'are', 'as', 'at', 'be', 'by', 'for', 'from',
        'has', 'he', 'in', 'is', 'it', 'its', 'of', 'on', 'that', 'the',
        'to', 'was', 'will', 'with', 'this', 'but', 'they', 'have',
        'had', 'what', 'when', 'where', 'who', 'which', 'why', 'how',
        'me', 'my', 'we', 'our', 'i', 'you', 'your', 'need', 'want',
        'looking', 'find', 'show',
    })

    def __init__(self, config: Optional[BM25Config] = None):
        """
        Initialize the scorer.

        Args:
            config: BM25 configuration (uses defaults if not provided)
        """
        self.config = config or BM25Config()
        self.stopwords = self.config.custom_stopwords or self.DEFAULT_STOPWORDS

    def tokenize(self, text: str) -> List[str]:
        """
        Tokenize text into terms.

        Lower-cases, extracts alphanumeric tokens, filters by length and
        optionally removes stopwords.
        """
        tokens = re.findall(r'\b[a-z0-9]+\b', text.lower())
        tokens = [
            t for t in tokens
            if self.config.min_term_length <= len(t) <= self.config.max_term_length
        ]
        if self.config.enable_stopwords:
            tokens = [t for t in tokens if t not in self.stopwords]
        return tokens

    def _idf(self, doc_freq: int, total_docs: int) -> float:
        if self.config.idf_smoothing:
            # Smoothed IDF stays positive for terms present in every document
            idf = math.log(1 + (total_docs - doc_freq + 0.5) / (doc_freq + 0.5))
        elif doc_freq == 0:
            idf = math.log(total_docs + 1)
        else:
            idf = math.log(total_docs / doc_freq)
        return max(idf, 0.0)

    def score(self, query: str, documents: Sequence[str]) -> List[float]:
        """
        Score every document against the query.

        Args:
            query: Query text
            documents: Document texts forming the corpus

        Returns:
            Raw BM25 scores, one per document, in input order
        """
        query_terms = list(dict.fromkeys(self.tokenize(query)))
        if not query_terms or not documents:
            return [0.0] * len(documents)

        tokenized = [self.tokenize(doc) for doc in documents]
        total_docs = len(tokenized)
        avg_length = sum(len(tokens) for tokens in tokenized) / total_docs or 1.0

        doc_freq: Dict[str, int] = Counter()
        for tokens in tokenized:
            doc_freq.update(set(tokens) & set(query_terms))
        idf = {term: self._idf(doc_freq.get(term, 0), total_docs) for term in query_terms}

        k1, b = self.config.k1, self.config.b
        scores = []
        for tokens in tokenized:
            term_freq = Counter(tokens)
            length_norm = 1 - b + b * (len(tokens) / avg_length)
            total = 0.0
            for term in query_terms:
                freq = term_freq.get(term, 0)
                if freq:
                    total += idf[term] * (freq * (k1 + 1)) / (freq + k1 * length_norm)
            scores.append(total)

        logger.debug(
            f"BM25 scored {total_docs} documents - terms: {len(query_terms)}, "
            f"avg_length: {avg_length:.1f}"
        )
        return scores
