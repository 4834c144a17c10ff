import logging

from launcher.utils.logger import LogFilter, setup_logging


def record(name):
    return logging.LogRecord(name, logging.INFO, __file__, 1, "message", None, None)


def test_filter_keeps_logger_and_children():
    log_filter = LogFilter("launcher.services")

    assert log_filter.filter(record("launcher.services"))
    assert log_filter.filter(record("launcher.services.operations"))
    assert not log_filter.filter(record("launcher.servicesx"))
    assert not log_filter.filter(record("launcher.models.mod"))


def test_setup_writes_log_file(tmp_path):
    log_file = tmp_path / "logs" / "launcher.log"
    root = logging.getLogger()
    previous_handlers, previous_level = list(root.handlers), root.level
    try:
        setup_logging(log_file, "debug", "launcher")
        logging.getLogger("launcher.models.mod_tree").debug("scanned")
        logging.getLogger("requests").debug("hidden")
        for handler in root.handlers:
            handler.flush()

        text = log_file.read_text(encoding="UTF-8")
        assert "launcher.models.mod_tree @ DEBUG" in text
        assert "hidden" not in text
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)
