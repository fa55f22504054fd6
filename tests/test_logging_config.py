import logging

from topoview.logging_config import setup_logging, _qt_message_handler
from PySide6.QtCore import QtMsgType


def test_setup_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "topo.log"
    setup_logging(logging.DEBUG)
    logger = setup_logging(logging.DEBUG, log_file=str(log_file))

    assert logger.name == "topoview"
    assert len(logger.handlers) == 2

    logging.getLogger("topoview.model.graph").debug("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "topoview.model.graph - DEBUG - hello" in log_file.read_text(encoding="utf-8")

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_qt_messages_map_to_log_levels(caplog):
    with caplog.at_level(logging.DEBUG, logger="topoview.qt"):
        _qt_message_handler(QtMsgType.QtWarningMsg, None, "painter not active")
    assert caplog.records[-1].levelno == logging.WARNING
    assert caplog.records[-1].getMessage() == "painter not active"
