"""Unit tests for application settings configuration."""

from pathlib import Path

from search_backend.config import Settings


def test_settings_uses_project_env_file_independent_of_cwd():
    """Settings should always include the project .env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_project_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_project_env in normalized
    assert str(Path(".env")) in normalized


def test_csv_settings_are_split():
    settings = Settings(
        _env_file=None,
        allowed_domains="https://docs.example.com, https://example.com,,",
        recaptcha_actions="keywords , generate_answer",
    )

    assert settings.allowed_origins == ["https://docs.example.com", "https://example.com"]
    assert settings.recaptcha_action_list == ["keywords", "generate_answer"]


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.rate_limit == 30
    assert settings.session_max_turns == 10
    assert settings.weight_documentation == 0.5
    assert settings.resolved_issue_bonus == 0.1
    assert settings.enable_recursive_search is False
