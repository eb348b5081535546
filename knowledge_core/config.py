from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Knowledge Core"
    debug: bool = False

    # SAP AI Core (text generation via gen_ai_hub proxy)
    # Runtime credentials from credential_store override these
    aicore_client_id: str = ""
    aicore_client_secret: str = ""
    aicore_auth_url: str = ""
    aicore_base_url: str = ""
    aicore_resource_group: str = ""
    llm_model: str = "gpt-4o"

    # Generation calls
    extraction_max_tokens: int = 4000
    extraction_temperature: float = 0.3
    similarity_max_tokens: int = 50
    similarity_temperature: float = 0.1
    generation_timeout_ms: int = 120000

    # Preprocessing / chunking
    min_clean_length: int = 100
    chunk_size: int = 20000
    chunk_overlap: int = 1000
    chunk_delay_ms: int = 500  # Between sequential chunk calls

    # Persistence
    save_batch_size: int = 5

    # Similarity
    similarity_fast_path_threshold: float = 70.0
    graph_window: int = 10  # Compare each item with the next N items only
    related_candidate_limit: int = 20

    # Classification
    subcategories_file: str = ""  # Empty = bundled data/subcategories.yaml

    # Documents
    documents_dir: str = ""  # .txt/.md files loaded at startup, keyed by file stem

    model_config = ConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
