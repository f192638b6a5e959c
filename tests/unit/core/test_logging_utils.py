"""Unit tests for the structured logging helpers."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from gifcap.core.logging_config import configure_logging, resolve_level
from gifcap.core.logging_utils import (
    StructuredLogger,
    ensure_structured_logger,
    get_module_logger,
)


def test_module_logger_lives_in_gifcap_namespace():
    logger = get_module_logger("worker")
    assert logger.name == "gifcap.worker"
    assert logger.component == "worker"


def test_names_already_in_namespace_are_kept():
    assert get_module_logger("gifcap.recorder").name == "gifcap.recorder"


def test_messages_are_prefixed_with_component(caplog):
    logger = get_module_logger("Recorder")
    with caplog.at_level(logging.INFO, logger="gifcap"):
        logger.info("saved %d frames", 3)

    assert caplog.records[-1].getMessage() == "[Recorder] saved 3 frames"


def test_bad_format_arguments_do_not_raise(caplog):
    logger = get_module_logger("Fmt")
    with caplog.at_level(logging.INFO, logger="gifcap"):
        logger.info("value %d", "text")

    assert "args=text" in caplog.records[-1].getMessage()


def test_disabled_levels_are_skipped(caplog):
    logger = get_module_logger("Quiet")
    with caplog.at_level(logging.WARNING, logger="gifcap"):
        logger.debug("hidden")

    assert not [r for r in caplog.records if "hidden" in r.getMessage()]


def test_child_logger_extends_component():
    child = get_module_logger("Recorder").getChild("worker1")
    assert child.component == "Recorder.worker1"
    assert child.name == "gifcap.Recorder.worker1"


def test_ensure_structured_logger_wraps_plain_loggers():
    plain = logging.getLogger("gifcap.plain")
    wrapped = ensure_structured_logger(plain, component="Plain")

    assert isinstance(wrapped, StructuredLogger)
    assert wrapped.logger is plain
    assert wrapped.component == "Plain"
    assert ensure_structured_logger(wrapped) is wrapped


def test_ensure_structured_logger_falls_back_to_module_logger():
    assert ensure_structured_logger(None, fallback_name="fallback").name == "gifcap.fallback"


def test_configure_logging_adds_rotating_file_handler(tmp_path, restore_package_logging):
    log_file = tmp_path / "logs" / "gifcap.log"

    configure_logging("debug", console=False, log_file=log_file)
    get_module_logger("File").info("hello")

    handlers = [h for h in restore_package_logging.handlers if isinstance(h, RotatingFileHandler)]
    assert len(handlers) == 1
    handlers[0].flush()
    assert "[File] hello" in log_file.read_text()
    assert restore_package_logging.level == logging.DEBUG


def test_configure_logging_leaves_root_logger_alone(restore_package_logging):
    root = logging.getLogger()
    before = list(root.handlers)

    configure_logging("info")

    assert root.handlers == before
    assert len(restore_package_logging.handlers) >= 1


def test_repeat_configuration_only_changes_level(restore_package_logging):
    configure_logging("info")
    handlers = list(restore_package_logging.handlers)

    configure_logging("warning")

    assert restore_package_logging.handlers == handlers
    assert restore_package_logging.level == logging.WARNING


def test_forced_configuration_replaces_handlers(restore_package_logging):
    configure_logging("info")
    first = list(restore_package_logging.handlers)

    configure_logging("info", force=True)

    assert len(restore_package_logging.handlers) == len(first)
    assert not set(first) & set(restore_package_logging.handlers)


@pytest.mark.parametrize("level, expected", [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), (40, 40)])
def test_resolve_level(level, expected):
    assert resolve_level(level) == expected


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError):
        resolve_level("loud")
