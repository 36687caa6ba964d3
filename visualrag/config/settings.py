from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel
import yaml
import os

class ExtractionConfig(BaseModel):
    header_footer_threshold: int = 3
    heading_size_ratio: float = 1.1
    lines_per_page: int = 50
    default_font_size: float = 12.0

class ChunkingConfig(BaseModel):
    chunking_strategy: str = "hybrid"       # "semantic" | "layout" | "hybrid"
    max_chunk_size: int = 1000              # tokens
    preserve_formatting: bool = True
    extract_images: bool = True
    token_estimator: str = "chars"          # "chars" | "cl100k_base"
    max_keywords: int = 10
    min_keyword_length: int = 4
    confidence: float = 0.95

class EmbeddingConfig(BaseModel):
    provider: str = "hash"                  # "hash" | "sentence-transformers"
    vector_dim: int = 384
    model_name: str = "sentence-transformers/all-MiniLM-L6-v2"
    batch_size: int = 32
    query_prefix: str = ""
    normalise: bool = True

class ScoringConfig(BaseModel):
    keyword_weight: float = 0.6
    semantic_weight: float = 0.4
    exact_match_score: float = 0.3
    keyword_match_score: float = 0.2
    fuzzy_match_score: float = 0.1
    min_query_word_length: int = 3
    position_bonus: float = 0.1
    position_scale: float = 10000.0
    heading_bonus: float = 0.2
    text_bonus: float = 0.1

class SearchConfig(BaseModel):
    max_chunks: int = 5
    similarity_threshold: float = 0.3
    include_context: bool = False
    ranking_strategy: str = "hybrid"
    max_related_chunks: int = 5
    min_shared_keywords: int = 2
    max_context_tokens: int = 3000

class StorageConfig(BaseModel):
    backend: str = "memory"                 # "memory" | "local"
    documents_path: str = "./data/documents"

class IngestionConfig(BaseModel):
    timeout_seconds: float = 120.0
    max_upload_bytes: int = 50 * 1024 * 1024

class AppSettings(BaseSettings):
    extraction: ExtractionConfig = ExtractionConfig()
    chunking: ChunkingConfig = ChunkingConfig()
    embedding: EmbeddingConfig = EmbeddingConfig()
    scoring: ScoringConfig = ScoringConfig()
    search: SearchConfig = SearchConfig()
    storage: StorageConfig = StorageConfig()
    ingestion: IngestionConfig = IngestionConfig()
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VISUALRAG_",
        extra="ignore"
    )

def load_settings(config_path: str = "visualrag/config/config.yaml") -> AppSettings:
    """Loads settings from config.yaml and applies env overrides."""

    # Try multiple paths so both the repo root and the package dir work
    paths_to_try = [
        config_path,
        "config.yaml",
        "config/config.yaml",
        os.path.join(os.path.dirname(__file__), "config.yaml")
    ]

    yaml_data = {}
    for path in paths_to_try:
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
            break

    overrides = {}
    if "log_level" in yaml_data:
        overrides["log_level"] = yaml_data["log_level"]

    # Manually map yaml sections to our sub-models
    return AppSettings(
        extraction=ExtractionConfig(**yaml_data.get("extraction", {})),
        chunking=ChunkingConfig(**yaml_data.get("chunking", {})),
        embedding=EmbeddingConfig(**yaml_data.get("embedding", {})),
        scoring=ScoringConfig(**yaml_data.get("scoring", {})),
        search=SearchConfig(**yaml_data.get("search", {})),
        storage=StorageConfig(**yaml_data.get("storage", {})),
        ingestion=IngestionConfig(**yaml_data.get("ingestion", {})),
        **overrides
    )

# Default settings; engine classes take explicit config and only fall back to these
settings = load_settings()
