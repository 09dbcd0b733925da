"""Hybrid reranker combining semantic, lexical, phrase, position and length signals."""
import logging
import string
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import config
from models.chunk import RetrievedCandidate, ScoreBreakdown, ScoredChunk

logger = logging.getLogger(__name__)

MIN_TERM_LENGTH = 3
TRIGRAM_BONUS = 10.0
BIGRAM_BONUS = 5.0
CANONICAL_CHUNK_LENGTH = 1200


@dataclass(frozen=True)
class RerankWeights:
    """Linear weights applied to each signal."""
    semantic: float = 0.45
    bm25: float = 0.30
    phrase: float = 0.15
    position: float = 0.05
    length: float = 0.05

    @classmethod
    def from_config(cls) -> "RerankWeights":
        return cls(
            semantic=config.RERANK_SEMANTIC_WEIGHT,
            bm25=config.RERANK_BM25_WEIGHT,
            phrase=config.RERANK_PHRASE_WEIGHT,
            position=config.RERANK_POSITION_WEIGHT,
            length=config.RERANK_LENGTH_WEIGHT
        )


@dataclass(frozen=True)
class BM25Params:
    """
    BM25 constants.

    Corpus statistics are not tracked, so IDF is a uniform weight and the
    average document length is a fixed estimate in words.
    """
    k1: float = 1.5
    b: float = 0.75
    avg_doc_length: float = 300.0
    idf_weight: float = 2.0

    @classmethod
    def from_config(cls) -> "BM25Params":
        return cls(
            k1=config.BM25_K1,
            b=config.BM25_B,
            avg_doc_length=config.BM25_AVG_DOC_LENGTH,
            idf_weight=config.BM25_IDF_WEIGHT
        )


class HybridReranker:
    """Rescore retrieved candidates and keep the best top_k."""

    def __init__(
        self,
        weights: Optional[RerankWeights] = None,
        bm25_params: Optional[BM25Params] = None,
        top_k: int = config.AFTER_RERANKING
    ):
        self.weights = weights or RerankWeights.from_config()
        self.bm25_params = bm25_params or BM25Params.from_config()
        self.top_k = top_k

    def rerank(
        self,
        query: str,
        candidates: Sequence[RetrievedCandidate],
        top_k: Optional[int] = None
    ) -> List[ScoredChunk]:
        """
        Score every candidate and return the best ones.

        The sort is stable, so candidates with equal combined scores keep
        their retrieval order.

        Args:
            query: Question text
            candidates: Candidates in retrieval order
            top_k: Number of results (defaults to the configured value)

        Returns:
            Up to top_k scored chunks, best first, ranked from 1
        """
        top_k = self.top_k if top_k is None else top_k
        if not candidates or top_k <= 0:
            return []

        terms = tokenize_query(query)
        bigrams, trigrams = build_ngrams(terms)

        scored = [
            (candidate, self.score(candidate, terms, bigrams, trigrams))
            for candidate in candidates
        ]
        scored.sort(key=lambda item: item[1].combined, reverse=True)

        results = [
            ScoredChunk(candidate=candidate, scores=scores, rank=rank)
            for rank, (candidate, scores) in enumerate(scored[:top_k], start=1)
        ]

        top_score = results[0].scores.combined
        average = sum(r.scores.combined for r in results) / len(results)
        logger.info(
            f"Reranked {len(candidates)} candidates to {len(results)} "
            f"(top={top_score:.2f}, avg={average:.2f})"
        )
        return results

    def score(
        self,
        candidate: RetrievedCandidate,
        terms: List[str],
        bigrams: List[str],
        trigrams: List[str]
    ) -> ScoreBreakdown:
        text = candidate.text.lower()

        semantic = semantic_score(candidate.distance)
        bm25 = self.bm25_score(text, terms)
        phrase = phrase_score(text, bigrams, trigrams)
        position = position_score(candidate.metadata.get("position"))
        length = length_score(candidate.metadata.get("length", len(candidate.text)))

        w = self.weights
        combined = (
            semantic * w.semantic
            + bm25 * w.bm25
            + phrase * w.phrase
            + position * w.position
            + length * w.length
        )
        return ScoreBreakdown(
            semantic=semantic,
            bm25=bm25,
            phrase=phrase,
            position=position,
            length=length,
            combined=combined
        )

    def bm25_score(self, text: str, terms: List[str]) -> float:
        """BM25-style saturation and length normalisation over lowercased text."""
        p = self.bm25_params
        doc_length = len(text.split())
        norm = p.k1 * (1 - p.b + p.b * (doc_length / p.avg_doc_length))

        total = 0.0
        for term in terms:
            tf = text.count(term)
            if tf:
                total += (tf * (p.k1 + 1)) / (tf + norm) * p.idf_weight
        return total


def tokenize_query(query: str) -> List[str]:
    """Lowercase whitespace tokens without surrounding punctuation, longer than 2 chars."""
    tokens = (token.strip(string.punctuation) for token in query.lower().split())
    return [token for token in tokens if len(token) >= MIN_TERM_LENGTH]


def build_ngrams(terms: List[str]) -> Tuple[List[str], List[str]]:
    bigrams = [" ".join(terms[i:i + 2]) for i in range(len(terms) - 1)]
    trigrams = [" ".join(terms[i:i + 3]) for i in range(len(terms) - 2)]
    return bigrams, trigrams


def semantic_score(distance: Optional[float]) -> float:
    if distance is None:
        return 0.0
    return (1 - distance) * 10


def phrase_score(text: str, bigrams: List[str], trigrams: List[str]) -> float:
    score = sum(TRIGRAM_BONUS for trigram in trigrams if trigram in text)
    score += sum(BIGRAM_BONUS for bigram in bigrams if bigram in text)
    return score


def position_score(position: Optional[int]) -> float:
    # Legal documents front-load definitions and key terms
    if position is None:
        return 0.0
    return max(0.0, 3 - 0.1 * position)


def length_score(length: int) -> float:
    return max(0.0, 2 - abs(length - CANONICAL_CHUNK_LENGTH) / 500)
