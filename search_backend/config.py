import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

_config_logger = logging.getLogger(__name__)

_PROJECT_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _PROJECT_DIR / ".env",
    ".env",
)


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Docs AI Search Backend"
    app_version: str = "3.0.0"
    app_env: str = "development"

    # Model provider (OpenAI-compatible)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    keyword_model: str = "gpt-4.1"
    answer_model: str = "gpt-4.1"
    classification_model: str = "gpt-4o-mini"
    summary_model: str = "gpt-3.5-turbo"
    keyword_max_tokens: int = 200
    answer_max_tokens: int = 2000
    model_temperature: float = 0.3

    # Request defaults
    max_keywords: int = 5
    max_documents: int = 10

    # Access control
    allowed_domains: str = ""
    enable_rate_limit: bool = True
    rate_limit: int = 30
    rate_limit_window_seconds: int = 60
    recaptcha_secret_key: str = ""
    recaptcha_score_threshold: float = 0.5
    recaptcha_actions: str = "keywords,generate_answer"
    recaptcha_verify_url: str = "https://www.google.com/recaptcha/api/siteverify"

    # Conversation sessions
    session_ttl_seconds: int = 1800
    session_max_turns: int = 10
    session_sweep_interval_seconds: int = 300

    # Search sources
    algolia_app_id: str = ""
    algolia_api_key: str = ""
    algolia_index_name: str = ""
    algolia_blog_index: str = ""
    algolia_changelog_index: str = ""
    github_token: str = ""
    github_repo: str = ""
    github_api_url: str = "https://api.github.com"

    # Multi-source aggregation
    weight_documentation: float = 0.5
    weight_github: float = 0.3
    weight_blog: float = 0.15
    weight_changelog: float = 0.05
    resolved_issue_bonus: float = 0.1

    # Recursive context enhancement
    fine_tuned_model_id: str = ""
    enable_recursive_search: bool = False
    max_recursion_depth: int = 2

    # Discourse forum responder
    discourse_api_key: str = ""
    discourse_rate_limit: int = 10
    discourse_cache_ttl: int = 3600
    discourse_max_response_length: int = 1500
    discourse_model: str = "gpt-4o-mini"
    discourse_product_name: str = "the product"
    enable_cache: bool = True

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_http: str = "WARNING"          # httpx / httpcore outbound HTTP
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_llm: str = "INFO"              # model provider adapter
    log_level_pipeline: str = "INFO"         # AnswerService / DiscourseService stages

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def allowed_origins(self) -> list[str]:
        return _split_csv(self.allowed_domains)

    @property
    def recaptcha_action_list(self) -> list[str]:
        return _split_csv(self.recaptcha_actions)

    def model_post_init(self, __context: object) -> None:
        """Warn about configuration that leaves the service half-usable."""
        if not self.openai_api_key.strip():
            _config_logger.warning(
                "OPENAI_API_KEY is not configured; model calls will be rejected upstream."
            )
        if not self.allowed_origins:
            _config_logger.warning(
                "ALLOWED_DOMAINS is empty; browser requests from any origin will be refused."
            )


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
