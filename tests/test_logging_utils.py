import logging

from slidesmith.logging_utils import setup_logging


def test_setup_logging_writes_to_file(tmp_path):
    log_path = tmp_path / "logs" / "slidesmith.log"
    setup_logging("debug", str(log_path))
    logging.getLogger("slidesmith.test").debug("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "[DEBUG] slidesmith.test: hello" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("urllib3").level == logging.WARNING
    setup_logging("INFO")
