"""Colored pipeline logger — ANSI-colored stage traces for answer and forum requests.

Each stage of a request (classify, enhance, generate, aggregate, validate,
forum reply) gets a label and color so one request can be followed
through the terminal output. Fields are appended as ``key=value`` pairs.
"""

import logging
from typing import Any, NamedTuple

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_RED = "\033[91m"
_GREEN = "\033[92m"
_YELLOW = "\033[93m"
_BLUE = "\033[94m"
_MAGENTA = "\033[95m"
_CYAN = "\033[96m"
_GRAY = "\033[90m"


class Stage(NamedTuple):
    label: str
    color: str
    icon: str


class PipelineStage:
    """Stages of the answer and forum pipelines."""

    CLASSIFICATION = Stage("CLASSIFY", _BLUE, "🏷️")
    ENHANCEMENT = Stage("ENHANCE", _MAGENTA, "🔎")
    GENERATION = Stage("GENERATE", _YELLOW, "🤖")
    AGGREGATION = Stage("AGGREGATE", _YELLOW, "🧩")
    VALIDATION = Stage("VALIDATE", _CYAN, "📏")
    FORUM = Stage("FORUM", _GREEN, "💬")
    ERROR = Stage("ERROR", _RED, "❌")


def _fields(fields: dict[str, Any], tone: str = _GRAY) -> str:
    if not fields:
        return ""
    pairs = " | ".join(f"{key}={value}" for key, value in fields.items())
    return f" {tone}({pairs}){_RESET}"


class PipelineLogger:
    """Stage-aware wrapper around a named stdlib logger.

    Usage:
        plog = PipelineLogger("AnswerService")
        plog.step_start(PipelineStage.GENERATION, "Generating answer", model="gpt-4.1")
        plog.step_complete(PipelineStage.VALIDATION, "valid", score=90)
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)

    def _tag(self, stage: Stage, *, bold: bool = False) -> str:
        weight = _BOLD if bold else ""
        return f"{stage.color}{weight}{stage.icon} [{stage.label}]{_RESET}"

    def step_start(self, stage: Stage, message: str, **fields: Any) -> None:
        self._logger.info(
            "%s %s%s%s%s", self._tag(stage, bold=True), stage.color, message, _RESET, _fields(fields)
        )

    def step_complete(self, stage: Stage, message: str, **fields: Any) -> None:
        self._logger.info(
            "%s %s✓ %s%s%s", self._tag(stage), _GREEN, message, _RESET, _fields(fields)
        )

    def step_degraded(self, stage: Stage, message: str, error: str | None = None) -> None:
        """The stage fell back to its deterministic path."""
        cause = f" {_DIM}→ {error}{_RESET}" if error else ""
        self._logger.warning("%s %s⚠ %s%s%s", self._tag(stage), _YELLOW, message, _RESET, cause)

    def step_error(self, stage: Stage, message: str, error: Exception | None = None) -> None:
        cause = f" {_DIM}→ {type(error).__name__}: {error}{_RESET}" if error else ""
        self._logger.error(
            "%s %s%s%s%s", self._tag(stage, bold=True), _RED, message, _RESET, cause
        )

    def detail(self, message: str, **fields: Any) -> None:
        self._logger.info("   %s├─ %s%s%s", _GRAY, message, _RESET, _fields(fields, _DIM))

    def stats(self, **fields: Any) -> None:
        summary = " | ".join(f"{key}: {value}" for key, value in fields.items())
        self._logger.info("   %s📈 %s%s", _GRAY, summary, _RESET)
