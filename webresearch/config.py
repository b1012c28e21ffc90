from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Generation model (OpenRouter / any OpenAI-compatible endpoint)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "mistralai/mistral-small-3.2-24b-instruct"
    openrouter_model: str = ""  # optional override of default_model
    model_timeout_seconds: float = 30.0

    # Search provider
    search_provider: str = "searxng"  # searxng | tavily
    searxng_base_url: str = "http://localhost:8080"
    tavily_api_key: str = ""
    search_language: str = "de-DE"
    search_timeout_seconds: float = 15.0
    search_max_parallel_requests: int = 4
    search_max_results_normal: int = 10
    search_max_results_deep: int = 8

    # Crawling
    crawl_max_urls_normal: int = 2
    crawl_max_urls_deep: int = 5
    crawl_timeout_seconds_normal: float = 3.0
    crawl_timeout_seconds_deep: float = 5.0
    crawl_max_parallel_requests: int = 2
    crawl_budget_seconds: float = 8.0
    crawl_max_content_chars: int = 4000
    crawl_min_content_chars: int = 50
    crawl_max_response_bytes: int = 2_000_000  # bytes read per page before the body is cut off
    crawl_user_agent: str = "WebResearchBot/1.0 (+https://example.local)"
    jina_reader_base_url: str = ""  # optional fallback, keep empty for local-only

    # Enrichment / synthesis
    enrich_max_chars: int = 400
    planner_max_questions: int = 6
    summary_top_k: int = 8
    summary_max_prompt_chars: int = 6000
    summary_max_tokens: int = 500
    summary_temperature: float = 0.2

    # Policy filter
    policy_set_path: str = ""  # JSON list of rules; empty uses the built-in set

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = ""  # empty disables the rotating file sink

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def model_name(self) -> str:
        return self.openrouter_model or self.default_model


settings = Settings()
