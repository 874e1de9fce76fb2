"""Unit tests for log configuration and the colored pipeline logger."""

import logging

from search_backend.config import Settings
from search_backend.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage
from search_backend.infrastructure.logging.log_config import setup_logging


def test_setup_logging_applies_category_levels():
    settings = Settings(
        _env_file=None,
        log_level="INFO",
        log_level_http="ERROR",
        log_level_pipeline="DEBUG",
        log_level_llm="nonsense",
    )

    setup_logging(settings)

    assert logging.getLogger("httpx").level == logging.ERROR
    assert logging.getLogger("AnswerService").level == logging.DEBUG
    assert logging.getLogger("search_backend.infrastructure.llm").level == logging.INFO


def test_pipeline_logger_formats_stage_and_fields(caplog):
    log = PipelineLogger("AnswerService")

    with caplog.at_level(logging.INFO, logger="AnswerService"):
        log.step_complete(PipelineStage.VALIDATION, "valid", score=90)
        log.step_degraded(PipelineStage.CLASSIFICATION, "Heuristic category general", "timeout")

    first, second = caplog.records
    assert "[VALIDATE]" in first.getMessage()
    assert "score=90" in first.getMessage()
    assert second.levelno == logging.WARNING
    assert "[CLASSIFY]" in second.getMessage()
    assert "timeout" in second.getMessage()


def test_pipeline_logger_error_includes_exception_type(caplog):
    log = PipelineLogger("DiscourseService")

    with caplog.at_level(logging.INFO, logger="DiscourseService"):
        log.step_error(PipelineStage.ERROR, "Forum reply failed", RuntimeError("boom"))

    (record,) = caplog.records
    assert record.levelno == logging.ERROR
    assert "RuntimeError: boom" in record.getMessage()
