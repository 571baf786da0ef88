"""Application settings loaded from environment variables via pydantic-settings.

Two sources, in priority order:

  1. Environment variables, e.g. ``EMBEDDING_PROVIDER=openai``
  2. A ``.env`` file in the working directory

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults apply
when neither source sets a value; the defaults give a fully in-memory,
offline pipeline using the deterministic hash embedder.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """klay application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Infrastructure ===
    # "in_memory" | "embedded" (SQLite) | "remote" (SQLite + ChromaDB vectors)
    backend: str = "in_memory"
    sqlite_path: str = "data/klay.db"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "klay_vectors"

    # === Embeddings ===
    # "hash" | "openai" | "nomic" | "cohere"
    embedding_provider: str = "hash"
    embedding_dimensions: int = Field(default=256, gt=0)
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_embedding_model: str = ""
    ollama_base_url: str = "http://localhost:11434"
    cohere_api_key: str = ""
    cohere_embedding_model: str = "embed-multilingual-v3.0"
    embedding_max_retries: int = Field(default=3, ge=1)
    embedding_backoff_base: float = Field(default=0.5, ge=0.0)
    embedding_timeout: float = Field(default=30.0, gt=0.0)

    # === Chunking ===
    # "recursive" | "sentence" | "fixed-size"
    chunking_strategy: str = "recursive"
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    min_chunk_size: int = Field(default=50, ge=0)
    max_chunk_size: int = Field(default=1000, gt=0)

    # === Retrieval ===
    default_top_k: int = Field(default=5, gt=0)
    query_cache_size: int = Field(default=512, ge=1)
    query_cache_ttl: int = Field(default=600, ge=1)

    # === Batch operations ===
    batch_concurrency: int = Field(default=8, ge=1)

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"
