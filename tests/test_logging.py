import logging

import pytest

from adguard_controller.logging import NETWORK_LOGGERS, configure_logging, resolve_level


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    network_levels = {name: logging.getLogger(name).level for name in NETWORK_LOGGERS}
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    for name, value in network_levels.items():
        logging.getLogger(name).setLevel(value)
    logging.captureWarnings(False)


@pytest.mark.parametrize(
    ("name", "expected"),
    [("debug", logging.DEBUG), (" WARNING ", logging.WARNING), ("15", 15), ("loud", None)],
)
def test_resolve_level(name, expected):
    assert resolve_level(name) == expected


def test_file_handler_receives_records(restore_logging, tmp_path):
    log_path = tmp_path / "logs" / "controller.log"

    configure_logging("debug", log_path=log_path)
    logging.getLogger("adguard_controller.test").debug("YouTube blocking enabled")
    for handler in restore_logging.handlers:
        handler.flush()

    assert restore_logging.level == logging.DEBUG
    assert len(restore_logging.handlers) == 2
    assert "| DEBUG | adguard_controller.test | YouTube blocking enabled" in (
        log_path.read_text(encoding="utf-8")
    )


def test_network_loggers_follow_flag(restore_logging):
    configure_logging("INFO")
    assert logging.getLogger("paho").level == logging.WARNING
    assert logging.getLogger("aiohttp.access").level == logging.WARNING

    configure_logging("INFO", log_network=True)
    assert logging.getLogger("paho").level == logging.NOTSET


def test_unknown_level_falls_back_to_info(restore_logging, tmp_path):
    log_path = tmp_path / "controller.log"

    configure_logging("loud", log_path=log_path)
    for handler in restore_logging.handlers:
        handler.flush()

    assert restore_logging.level == logging.INFO
    assert "Unknown log level 'loud'; using INFO" in log_path.read_text(
        encoding="utf-8"
    )
