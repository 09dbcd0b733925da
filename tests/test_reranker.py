"""Unit tests for the hybrid reranker."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.chunk import RetrievedCandidate
from services.reranker import (
    BM25Params,
    HybridReranker,
    RerankWeights,
    build_ngrams,
    length_score,
    position_score,
    semantic_score,
    tokenize_query,
)


def make_candidate(text, distance=0.3, position=5, length=1200, chunk_id=None):
    return RetrievedCandidate(
        chunk_id=chunk_id,
        text=text,
        metadata={"session_id": "s1", "filename": "A.pdf", "position": position, "length": length},
        distance=distance
    )


@pytest.fixture
def reranker():
    return HybridReranker(weights=RerankWeights(), bm25_params=BM25Params(), top_k=5)


class TestSignals:
    """Individual scoring signals."""

    def test_tokenize_query(self):
        assert tokenize_query("What is the Termination fee?") == ["what", "the", "termination", "fee"]

    def test_build_ngrams(self):
        bigrams, trigrams = build_ngrams(["early", "termination", "notice"])

        assert bigrams == ["early termination", "termination notice"]
        assert trigrams == ["early termination notice"]

    def test_semantic_score(self):
        assert semantic_score(0.2) == pytest.approx(8.0)
        assert semantic_score(0.0) == pytest.approx(10.0)
        assert semantic_score(None) == 0.0

    def test_position_score(self):
        assert position_score(0) == pytest.approx(3.0)
        assert position_score(10) == pytest.approx(2.0)
        assert position_score(40) == 0.0
        assert position_score(None) == 0.0

    def test_length_score(self):
        assert length_score(1200) == pytest.approx(2.0)
        assert length_score(950) == pytest.approx(1.5)
        assert length_score(100) == 0.0

    def test_bm25_score_matches_formula(self, reranker):
        text = "termination clause termination"
        tf, doc_length = 2, 3
        norm = 1.5 * (1 - 0.75 + 0.75 * doc_length / 300)
        expected = tf * 2.5 / (tf + norm) * 2

        assert reranker.bm25_score(text, ["termination"]) == pytest.approx(expected)

    def test_bm25_without_matches_is_zero(self, reranker):
        assert reranker.bm25_score("nothing relevant here", ["indemnity"]) == 0.0

    def test_bm25_monotonic_in_term_frequency(self, reranker):
        once = reranker.bm25_score("fee other other other", ["fee"])
        thrice = reranker.bm25_score("fee fee fee other", ["fee"])

        assert thrice >= once


class TestHybridReranker:
    """Ranking behaviour."""

    def test_empty_candidates(self, reranker):
        assert reranker.rerank("any question", []) == []

    def test_top_k_bound_and_order(self, reranker):
        candidates = [make_candidate(f"text {i}", distance=0.1 * i) for i in range(7)]

        results = reranker.rerank("question", candidates, top_k=3)

        assert len(results) == 3
        combined = [r.scores.combined for r in results]
        assert combined == sorted(combined, reverse=True)
        assert [r.rank for r in results] == [1, 2, 3]

    def test_top_k_larger_than_candidates(self, reranker):
        candidates = [make_candidate("a"), make_candidate("b")]

        assert len(reranker.rerank("question", candidates, top_k=5)) == 2

    def test_ties_keep_retrieval_order(self, reranker):
        candidates = [make_candidate("same text", chunk_id=f"c{i}") for i in range(4)]

        results = reranker.rerank("unrelated", candidates)

        assert [r.candidate.chunk_id for r in results] == ["c0", "c1", "c2", "c3"]

    def test_deterministic(self, reranker):
        candidates = [
            make_candidate("The licensee shall pay the licence fee monthly.", distance=0.35, position=2),
            make_candidate("Termination requires thirty days notice.", distance=0.30, position=7),
            make_candidate("Governing law is the State of New York.", distance=0.5, position=12),
        ]

        first = reranker.rerank("When is the licence fee due?", candidates)
        second = reranker.rerank("When is the licence fee due?", candidates)

        assert [r.candidate.text for r in first] == [r.candidate.text for r in second]
        assert [r.scores for r in first] == [r.scores for r in second]

    def test_trigram_match_ranks_first(self, reranker):
        filler = "The parties agree to the terms set out in this schedule."
        candidates = [make_candidate(filler, chunk_id=f"c{i}") for i in range(5)]
        candidates[3] = make_candidate(
            "Either party may give early termination notice in writing.", chunk_id="c3"
        )

        results = reranker.rerank("What about early termination notice?", candidates)

        assert results[0].candidate.chunk_id == "c3"
        assert results[0].scores.phrase >= 10
        assert all(r.scores.phrase == 0 for r in results[1:])

    def test_phrase_score_counts_trigrams_and_bigrams(self, reranker):
        candidate = make_candidate("the termination notice period is ninety days")

        result = reranker.rerank("early termination notice period", [candidate])[0]

        # trigram "termination notice period" + bigrams "termination notice", "notice period"
        assert result.scores.phrase == pytest.approx(20.0)

    def test_combined_uses_weights(self):
        semantic_only = HybridReranker(
            weights=RerankWeights(semantic=1.0, bm25=0.0, phrase=0.0, position=0.0, length=0.0),
            bm25_params=BM25Params()
        )
        candidate = make_candidate("fee fee fee", distance=0.25)

        result = semantic_only.rerank("fee", [candidate])[0]

        assert result.scores.combined == pytest.approx(7.5)

    def test_default_combination(self, reranker):
        candidate = make_candidate("no overlap at all", distance=0.5, position=0, length=1200)

        scores = reranker.rerank("question", [candidate])[0].scores

        expected = 0.45 * 5.0 + 0.30 * 0.0 + 0.15 * 0.0 + 0.05 * 3.0 + 0.05 * 2.0
        assert scores.combined == pytest.approx(expected)

    def test_candidate_without_metadata(self, reranker):
        candidate = RetrievedCandidate(chunk_id=None, text="x" * 1200)

        scores = reranker.rerank("question", [candidate])[0].scores

        assert scores.semantic == 0.0
        assert scores.position == 0.0
        assert scores.length == pytest.approx(2.0)
