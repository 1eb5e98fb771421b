import json
import logging

import pytest

from app.core.logging_config import configure_logging, reset_logging


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


@pytest.fixture
def handler():
    reset_logging()
    handler = ListHandler()
    yield handler
    reset_logging()


def test_json_logging(handler):
    configure_logging(level="DEBUG", json_output=True, handler=handler)

    logging.getLogger("app.services.payment_service").info(
        "Added payment %s", "p1", extra={"group_id": "g1"}
    )

    payload = json.loads(handler.lines[-1])
    assert payload["level"] == "INFO"
    assert payload["logger"] == "app.services.payment_service"
    assert payload["message"] == "Added payment p1"
    assert payload["group_id"] == "g1"


def test_configure_logging_is_idempotent(handler):
    configure_logging(level="INFO", handler=handler)
    configure_logging(level="DEBUG", handler=ListHandler())

    logger = logging.getLogger("app")
    assert logger.handlers == [handler]
    assert logger.level == logging.INFO
