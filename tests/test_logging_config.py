import logging
from pathlib import Path

from quizsync import logging_config


def test_configure_logging_writes_to_requested_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    before = list(root.handlers)
    target = tmp_path / "logs" / "quizsync.log"
    try:
        path = logging_config.configure_logging(logging.INFO, log_path=target)
        again = logging_config.configure_logging(logging.INFO, log_path=target)

        logging.getLogger("quizsync.test").warning("set %s recreated", 42)
        for handler in root.handlers:
            handler.flush()

        assert path == again == target
        file_handlers = [
            handler
            for handler in root.handlers
            if isinstance(handler, logging.FileHandler) and handler.baseFilename == str(target.resolve())
        ]
        assert len(file_handlers) == 1
        assert "[WARNING] quizsync.test: set 42 recreated" in target.read_text(encoding="utf-8")
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        logging_config._LOG_PATH = None


def test_get_log_path_returns_configured_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    before = list(root.handlers)
    target = tmp_path / "quizsync.log"
    try:
        logging_config.configure_logging(logging.INFO, log_path=target)

        assert logging_config.get_log_path() == target
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        logging_config._LOG_PATH = None
