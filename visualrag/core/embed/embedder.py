import logging
from abc import ABC, abstractmethod
from typing import List, Optional
import numpy as np
from visualrag.models.chunk import DocumentChunk
from visualrag.core.exceptions import ConfigurationError
from visualrag.config.settings import EmbeddingConfig, settings

logger = logging.getLogger(__name__)

class EmbeddingProvider(ABC):
    """
    Interface every embedding backend implements.
    Contract: fixed dimensionality, one vector per text, and the same vector
    for the same text within a process so chunk and query vectors are comparable.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        pass

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        return [self.embed(t) for t in texts]

    def embed_query(self, query: str) -> List[float]:
        return self.embed(query)

    def embed_chunks(self, chunks: List[DocumentChunk]) -> List[DocumentChunk]:
        """
        Generates embeddings for a list of chunks.
        Updates metadata.embedding of each chunk in-place.
        """
        if not chunks:
            return chunks

        vectors = self.embed_many([c.content for c in chunks])
        for chunk, vector in zip(chunks, vectors):
            chunk.metadata.embedding = vector
        return chunks

def rolling_hash(text: str) -> int:
    """hash = hash * 31 + code unit over UTF-16 code units, wrapped to a signed 32-bit int."""
    h = 0
    encoded = text.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h

class HashEmbedder(EmbeddingProvider):
    """
    Deterministic placeholder embedding: (sin(hash + i) + 1) / 2 for i in 0..dim-1.
    Carries no semantics; stands in for a real model in tests and offline use.
    """

    def __init__(self, dimension: int = 384):
        self._dimension = dimension
        self._offsets = np.arange(dimension, dtype=np.float64)

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> List[float]:
        h = rolling_hash(text)
        return ((np.sin(h + self._offsets) + 1.0) / 2.0).tolist()

class SentenceTransformerEmbedder(EmbeddingProvider):
    """
    Embeddings from a sentence-transformers model.
    - Model is loaded once per process and shared between instances.
    - Supports batched embedding and L2 normalisation.
    """

    _models = {}

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self.config = config or settings.embedding
        self._load_model()

    def _load_model(self):
        """Loads the sentence-transformer model onto CPU."""
        name = self.config.model_name
        if name not in SentenceTransformerEmbedder._models:
            from sentence_transformers import SentenceTransformer
            logger.info(f"Loading embedding model: {name}...")
            SentenceTransformerEmbedder._models[name] = SentenceTransformer(name, device="cpu")
        self.model = SentenceTransformerEmbedder._models[name]

    @property
    def dimension(self) -> int:
        return self.model.get_sentence_embedding_dimension()

    def embed(self, text: str) -> List[float]:
        return self.embed_many([text])[0]

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        embeddings = self.model.encode(
            texts,
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            normalize_embeddings=self.config.normalise
        )
        return [e.tolist() for e in embeddings]

    def embed_query(self, query: str) -> List[float]:
        # Some models (BGE, E5) expect an instruction prefix on queries only
        return self.embed(f"{self.config.query_prefix}{query}")

def build_embedder(config: Optional[EmbeddingConfig] = None) -> EmbeddingProvider:
    config = config or settings.embedding
    if config.provider == "hash":
        return HashEmbedder(config.vector_dim)
    if config.provider == "sentence-transformers":
        return SentenceTransformerEmbedder(config)
    raise ConfigurationError(f"Unknown embedding provider: {config.provider}")
