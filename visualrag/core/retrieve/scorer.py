import re
import string
from typing import List, Optional, Sequence
import numpy as np
from visualrag.models.chunk import ChunkType, DocumentChunk
from visualrag.models.query import RankingStrategy
from visualrag.core.embed.embedder import EmbeddingProvider, HashEmbedder
from visualrag.config.settings import ScoringConfig, settings

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between a and b; 0 for mismatched lengths or zero vectors."""
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)

def query_words(query: str, min_length: int = 3) -> List[str]:
    words = (w.strip(string.punctuation) for w in query.lower().split())
    return [w for w in words if len(w) >= min_length]

class RelevanceScorer:
    """
    Scores a chunk against a free-text query.
    - keyword: exact, keyword-list and fuzzy matches per query word, averaged and capped at 1
    - semantic: cosine similarity of query and chunk embeddings
    - bonuses: earlier position on the page, heading/text chunk type
    The combination depends on the ranking strategy; the result is clamped to [0, 1].
    """

    def __init__(self,
                 embedder: Optional[EmbeddingProvider] = None,
                 config: Optional[ScoringConfig] = None):
        self.embedder = embedder or HashEmbedder()
        self.config = config or settings.scoring

    def score(self,
              query: str,
              chunk: DocumentChunk,
              strategy: RankingStrategy = RankingStrategy.hybrid,
              query_embedding: Optional[List[float]] = None) -> float:
        bonuses = self.position_bonus(chunk) + self.type_bonus(chunk)

        if strategy == RankingStrategy.keyword:
            base = self.keyword_score(query, chunk)
        elif strategy == RankingStrategy.semantic:
            base = self.semantic_score(query, chunk, query_embedding)
        else:
            base = (self.config.keyword_weight * self.keyword_score(query, chunk) +
                    self.config.semantic_weight * self.semantic_score(query, chunk, query_embedding))

        return min(1.0, max(0.0, base + bonuses))

    def keyword_score(self, query: str, chunk: DocumentChunk) -> float:
        words = query_words(query, self.config.min_query_word_length)
        if not words:
            return 0.0

        content = chunk.content.lower()
        keywords = chunk.metadata.keywords
        score = 0.0

        for word in words:
            if word in content:
                score += self.config.exact_match_score

            if any(k in word or word in k for k in keywords):
                score += self.config.keyword_match_score

            # Fuzzy: the word minus its last character, anywhere in the content
            stem = word[:-1]
            fuzzy_matches = re.findall(re.escape(stem), chunk.content, re.IGNORECASE)
            score += len(fuzzy_matches) * self.config.fuzzy_match_score

        return min(1.0, score / len(words))

    def semantic_score(self,
                       query: str,
                       chunk: DocumentChunk,
                       query_embedding: Optional[List[float]] = None) -> float:
        if query_embedding is None:
            query_embedding = self.embedder.embed_query(query)
        chunk_embedding = chunk.metadata.embedding
        if chunk_embedding is None:
            chunk_embedding = self.embedder.embed(chunk.content)
        return cosine_similarity(query_embedding, chunk_embedding)

    def position_bonus(self, chunk: DocumentChunk) -> float:
        factor = 1 - chunk.metadata.position.y / self.config.position_scale
        return min(1.0, max(0.0, factor)) * self.config.position_bonus

    def type_bonus(self, chunk: DocumentChunk) -> float:
        if chunk.type == ChunkType.heading:
            return self.config.heading_bonus
        if chunk.type == ChunkType.text:
            return self.config.text_bonus
        return 0.0
