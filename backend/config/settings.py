from typing import List, Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Database
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "medical_scribe"
    db_connection_pool_size: int = 10

    # Primary provider (free-form completion)
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-20250514"

    # Secondary provider (JSON mode)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_version: str = "2024-02-15-preview"

    # Generation
    provider_timeout_seconds: float = 30.0
    max_output_tokens: int = 2000
    temperature: float = 0.2
    generation_strategies: List[str] = ["anthropic", "openai", "rule_based"]
    extraction_rules_path: Optional[str] = None
    default_specialty: str = "General Medicine"

    # Application
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

# Global settings instance
settings = Settings()
