"""Logging setup for the service.

Levels are configured per category from Settings, so outbound HTTP chatter
or uvicorn access lines can be turned down while pipeline traces stay on.

Usage:
    from search_backend.infrastructure.logging.log_config import setup_logging
    setup_logging()   # once, from the application lifespan
"""

import logging
import sys

from search_backend.config import Settings, get_settings

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Settings field → logger names whose level it controls.
_CATEGORY_MAP: dict[str, tuple[str, ...]] = {
    "log_level_http": ("httpx", "httpcore"),
    "log_level_uvicorn": ("uvicorn", "uvicorn.access", "uvicorn.error"),
    "log_level_pipeline": ("AnswerService", "DiscourseService"),
    "log_level_llm": (
        "search_backend.infrastructure.llm",
        "search_backend.application.services.llm_usage_logger",
    ),
}


def setup_logging(settings: Settings | None = None) -> None:
    """Apply the root level and every category level from settings."""
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    # uvicorn installs its own handler; tests and scripts do not.
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)

    levels = {
        field: _parse_level(getattr(settings, field, "INFO")) for field in _CATEGORY_MAP
    }
    for field, names in _CATEGORY_MAP.items():
        for name in names:
            logging.getLogger(name).setLevel(levels[field])

    logging.getLogger(__name__).debug(
        "Logging configured: root=%s %s",
        settings.log_level,
        " ".join(f"{field.removeprefix('log_level_')}={logging.getLevelName(level)}"
                 for field, level in levels.items()),
    )


def _parse_level(raw: str) -> int:
    """Map a level name to its logging constant; unknown names mean INFO."""
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else logging.INFO
