from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Language model
    llm_provider: str = "anthropic"  # anthropic | openrouter
    anthropic_api_key: str = ""
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "claude-sonnet-4-5-20250929"
    llm_calls_per_second: float = 4.0  # 0 disables pacing

    # Search
    brave_api_key: str = ""
    search_max_results: int = 5
    followup_search_max_results: int = 3
    # keyword -> list of URLs served when the search provider is unavailable
    fallback_keyword_sources: dict[str, list[str]] = {}

    # Scrape
    scrape_timeout_seconds: float = 10.0
    followup_scrape_timeout_seconds: float = 8.0
    scrape_max_chars: int = 3000
    followup_scrape_max_chars: int = 2000
    scrape_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )

    # Streaming
    stream_liveness_timeout_seconds: float = 60.0

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    @property
    def llm_api_key(self) -> str:
        if self.llm_provider.lower().strip() == "openrouter":
            return self.openrouter_api_key
        return self.anthropic_api_key


settings = Settings()
