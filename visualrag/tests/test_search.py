import pytest
from datetime import datetime

from visualrag.core.retrieve.scorer import RelevanceScorer, cosine_similarity, query_words
from visualrag.core.retrieve.searcher import DocumentSearcher
from visualrag.core.chunk.relationship_linker import RelationshipLinker
from visualrag.core.chunk.text_analysis import extract_keywords
from visualrag.core.embed.embedder import HashEmbedder
from visualrag.config.settings import ScoringConfig
from visualrag.models.chunk import ChunkMetadata, ChunkType, DocumentChunk, Position
from visualrag.models.document import DocumentMetadata, DocumentStructure
from visualrag.models.query import (
    DateRange, QueryFilters, QueryOptions, RAGQuery, RankingStrategy
)

def make_chunk(chunk_id: str, content: str, chunk_type: ChunkType = ChunkType.text, y: float = 0.0):
    return DocumentChunk(
        id=chunk_id,
        content=content,
        type=chunk_type,
        metadata=ChunkMetadata(
            page=1,
            position=Position(x=50, y=y, width=500, height=16),
            keywords=extract_keywords(content)
        )
    )

def make_document(doc_id: str, chunks, title: str = "Travel Notes", timestamp: str = "2025-06-01T12:00:00+00:00"):
    RelationshipLinker().link(chunks)
    return DocumentStructure(
        id=doc_id,
        filename=f"{doc_id}.md",
        total_pages=1,
        chunks=chunks,
        metadata=DocumentMetadata(
            title=title,
            processing_timestamp=timestamp,
            chunking_strategy="hybrid"
        )
    )

def make_query(text: str, **options) -> RAGQuery:
    filters = options.pop("filters", None)
    return RAGQuery(query=text, filters=filters, options=QueryOptions(**options))

def travel_document():
    return make_document("doc_travel", [
        make_chunk("h1", "# Paris travel guide", ChunkType.heading, y=0),
        make_chunk("t1", "Paris is the capital of France and a popular destination.", y=24),
        make_chunk("l1", "- Visit the Louvre museum in Paris", ChunkType.list, y=44),
        make_chunk("t2", "Berlin has a vibrant art scene.", y=64),
        make_chunk("c1", "def book_trip(city): return city", ChunkType.code, y=84),
    ])

def test_capital_of_france_keyword_match():
    print("Testing keyword ranking for 'capital France'...")
    document = make_document("doc_fr", [make_chunk("fr", "The capital of France is Paris")])
    query = make_query("capital France", ranking_strategy=RankingStrategy.keyword, similarity_threshold=0.3)
    result = DocumentSearcher().search([document], query)

    assert len(result.chunks) == 1
    top = result.chunks[0]
    print(f"Score: {top.relevance_score}")
    assert top.relevance_score > 0.5
    # 0.6 keyword + 0.1 position + 0.1 text bonus
    assert top.relevance_score == pytest.approx(0.8)
    assert top.document_id == "doc_fr"
    assert top.document_title == "Travel Notes"
    assert result.context.total_matches == 1
    assert result.context.search_strategy == RankingStrategy.keyword
    assert result.context.processing_time_ms >= 0
    print("Keyword ranking tests PASSED")

def test_threshold_above_one_returns_nothing():
    query = make_query("Paris", similarity_threshold=1.1)
    result = DocumentSearcher().search([travel_document()], query)
    assert result.chunks == []
    assert result.context.total_matches == 0

def test_empty_inputs():
    searcher = DocumentSearcher()
    empty = searcher.search([], make_query("Paris"))
    assert empty.chunks == []
    assert empty.context.total_matches == 0
    assert empty.context.document_title == "0 documents"

    blank = searcher.search([travel_document()], make_query("   "))
    assert blank.chunks == []

def test_threshold_monotonicity():
    print("Testing threshold monotonicity...")
    document = travel_document()
    searcher = DocumentSearcher()
    counts = []
    for threshold in [0.0, 0.2, 0.4, 0.6, 0.8, 1.0]:
        result = searcher.search([document], make_query("Paris museum", similarity_threshold=threshold, max_chunks=10))
        counts.append(len(result.chunks))
    print(f"Counts per threshold: {counts}")
    assert counts == sorted(counts, reverse=True)
    assert counts[0] == 5
    print("Monotonicity tests PASSED")

def test_scores_bounded_for_every_strategy():
    document = travel_document()
    searcher = DocumentSearcher()
    for strategy in RankingStrategy:
        result = searcher.search([document], make_query("Paris Paris Paris capital", ranking_strategy=strategy,
                                                        similarity_threshold=0.0, max_chunks=10))
        assert all(0.0 <= c.relevance_score <= 1.0 for c in result.chunks)

def test_sorted_and_truncated():
    query = make_query("Paris capital", similarity_threshold=0.0, max_chunks=2)
    result = DocumentSearcher().search([travel_document()], query)

    assert len(result.chunks) == 2
    assert result.context.total_matches == 5
    assert result.chunks[0].relevance_score >= result.chunks[1].relevance_score

def test_heading_outranks_equal_text():
    document = make_document("doc_bonus", [
        make_chunk("text", "Paris guide", ChunkType.text, y=0),
        make_chunk("head", "# Paris guide", ChunkType.heading, y=0),
    ])
    result = DocumentSearcher().search([document], make_query("paris", ranking_strategy=RankingStrategy.keyword))

    assert [c.id for c in result.chunks] == ["head", "text"]
    assert result.chunks[0].relevance_score == pytest.approx(0.9)
    assert result.chunks[1].relevance_score == pytest.approx(0.8)

def test_filters():
    print("Testing query filters...")
    old = make_document("doc_old", [make_chunk("o1", "Paris in the spring"), make_chunk("o2", "# Paris history", ChunkType.heading)],
                        title="Old Notes", timestamp="2024-01-01T00:00:00+00:00")
    new = travel_document()
    searcher = DocumentSearcher()
    base = dict(similarity_threshold=0.0, max_chunks=20)

    by_id = searcher.search([old, new], make_query("Paris", filters=QueryFilters(document_ids=["doc_old"]), **base))
    assert {c.document_id for c in by_id.chunks} == {"doc_old"}
    assert by_id.context.document_title == "2 documents"

    by_type = searcher.search([old, new], make_query("Paris", filters=QueryFilters(chunk_types=[ChunkType.heading]), **base))
    assert {c.id for c in by_type.chunks} == {"o2", "h1"}

    by_keyword = searcher.search([new], make_query("Paris", filters=QueryFilters(keywords=["Louvre"]), **base))
    assert [c.id for c in by_keyword.chunks] == ["l1"]

    by_date = searcher.search([old, new], make_query(
        "Paris", filters=QueryFilters(date_range=DateRange(start=datetime(2025, 1, 1))), **base))
    assert {c.document_id for c in by_date.chunks} == {"doc_travel"}

    before = searcher.search([old, new], make_query(
        "Paris", filters=QueryFilters(date_range=DateRange(end=datetime(2024, 6, 1))), **base))
    assert {c.document_id for c in before.chunks} == {"doc_old"}
    print("Filter tests PASSED")

def test_include_context_attaches_neighbours():
    document = make_document("doc_ctx", [
        make_chunk("a", "Berlin notes", y=0),
        make_chunk("b", "Paris", y=20),
        make_chunk("c", "Rome notes", y=40),
    ])
    query = make_query("Paris", ranking_strategy=RankingStrategy.keyword, similarity_threshold=0.5,
                       include_context=True)
    result = DocumentSearcher().search([document], query)

    assert [c.id for c in result.chunks] == ["b"]
    assert [c.id for c in result.chunks[0].context_chunks] == ["a", "c"]

    without = DocumentSearcher().search([document], make_query("Paris", ranking_strategy=RankingStrategy.keyword,
                                                               similarity_threshold=0.5))
    assert without.chunks[0].context_chunks == []

def test_semantic_uses_stored_embeddings():
    embedder = HashEmbedder()
    chunk = make_chunk("s", "unrelated words entirely", y=0)
    chunk.metadata.embedding = embedder.embed_query("where is the tower")
    document = make_document("doc_sem", [chunk])

    result = DocumentSearcher(RelevanceScorer(embedder)).search(
        [document], make_query("where is the tower", ranking_strategy=RankingStrategy.semantic))
    assert result.chunks[0].relevance_score == pytest.approx(1.0)

def test_keyword_score_details():
    scorer = RelevanceScorer()
    chunk = make_chunk("fr", "The capital of France is Paris")

    assert scorer.keyword_score("France?", chunk) == pytest.approx(0.6)
    assert scorer.keyword_score("is a", chunk) == 0.0
    assert scorer.keyword_score("", chunk) == 0.0
    # Capped at 1 even with many fuzzy hits
    repeated = make_chunk("rep", "paris " * 20)
    assert scorer.keyword_score("paris", repeated) == 1.0
    # Regex metacharacters in the query are matched literally
    assert scorer.keyword_score("pari(s", chunk) == 0.0

    assert query_words("What is the CAPITAL, of France?") == ["what", "the", "capital", "france"]

def test_position_and_type_bonus():
    scorer = RelevanceScorer()
    assert scorer.position_bonus(make_chunk("top", "x", y=0)) == pytest.approx(0.1)
    assert scorer.position_bonus(make_chunk("mid", "x", y=5000)) == pytest.approx(0.05)
    assert scorer.position_bonus(make_chunk("far", "x", y=20000)) == 0.0
    assert scorer.type_bonus(make_chunk("h", "x", ChunkType.heading)) == pytest.approx(0.2)
    assert scorer.type_bonus(make_chunk("t", "x", ChunkType.text)) == pytest.approx(0.1)
    assert scorer.type_bonus(make_chunk("c", "x", ChunkType.code)) == 0.0

def test_custom_weights():
    chunk = make_chunk("fr", "The capital of France is Paris")
    keyword_only = RelevanceScorer(config=ScoringConfig(keyword_weight=1.0, semantic_weight=0.0))
    assert keyword_only.score("capital France", chunk, RankingStrategy.hybrid) == pytest.approx(
        keyword_only.score("capital France", chunk, RankingStrategy.keyword))

def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
    assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0
    assert cosine_similarity([], []) == 0.0

if __name__ == "__main__":
    test_capital_of_france_keyword_match()
    test_threshold_monotonicity()
    test_filters()
