"""Test unified logging setup.

Run:
    pytest tests/test_logging_config.py -v
"""

import json
import logging
import logging.handlers

import pytest

from paintmix.utils import logging_config


@pytest.fixture(autouse=True)
def restore_logging():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    logging_config.pop_context()
    logging.captureWarnings(False)


def _record(msg="Rendered field", level=logging.INFO):
    return logging.LogRecord("paintmix.test", level, __file__, 1, msg, None, None)


def test_human_format_includes_context():
    logging_config.push_context(app="render", backend="cpu")
    line = logging_config.ContextFormatter("human", use_color=False).format(_record())
    assert "| INFO" in line
    assert "app=render backend=cpu |" in line
    assert line.endswith("Rendered field")


def test_json_format():
    logging_config.push_context(app="render")
    payload = json.loads(logging_config.ContextFormatter("json").format(_record()))
    assert payload["lvl"] == "INFO"
    assert payload["app"] == "render"
    assert payload["msg"] == "Rendered field"
    assert payload["name"] == "paintmix.test"


def test_unknown_format_rejected():
    with pytest.raises(ValueError, match="Unknown log format"):
        logging_config.ContextFormatter("xml")


def test_push_and_pop_context():
    logging_config.push_context(app="render", size="8x8")
    logging_config.pop_context(keys=["size"])
    assert logging_config.get_context() == {"app": "render"}
    logging_config.pop_context()
    assert logging_config.get_context() == {}


def test_setup_logging_is_idempotent(tmp_path):
    log_file = tmp_path / "logs" / "render.log"
    root = logging.getLogger()
    first = logging_config.setup_logging("DEBUG", str(log_file), color=False)
    foreign = [h for h in root.handlers if h not in first]
    handlers = logging_config.setup_logging("DEBUG", str(log_file), color=False)
    assert len(handlers) == 2
    assert not any(h in root.handlers for h in first)
    assert root.handlers == foreign + handlers
    assert root.level == logging.DEBUG

    logging_config.get_logger("paintmix.test").info("written to file")
    for h in handlers:
        h.flush()
    assert "written to file" in log_file.read_text()


def test_setup_logging_rotation(tmp_path):
    handlers = logging_config.setup_logging(
        "INFO", str(tmp_path / "r.log"), to_stderr=False, max_bytes=1024
    )
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.handlers.RotatingFileHandler)


def test_setup_logging_rejects_bad_level():
    with pytest.raises(ValueError, match="Unknown log level"):
        logging_config.setup_logging("LOUD")


def test_quiet_libs():
    logging_config.setup_logging("DEBUG", to_stderr=False, quiet_libs=["matplotlib"])
    assert logging.getLogger("matplotlib").level == logging.WARNING
