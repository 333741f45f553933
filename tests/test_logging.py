import io
import logging
from pathlib import Path

import pytest

from nodeward.observability import LogConfig, logger, setup_logging, teardown_logging

pytestmark = [pytest.mark.unit]


@pytest.fixture
def handler_ids():
    ids: list[int] = []
    yield ids
    teardown_logging(ids)


def test_file_sink_receives_bound_context(tmp_path: Path, handler_ids: list[int]):
    log_file = tmp_path / "logs" / "nodeward.log"
    handler_ids += setup_logging(LogConfig(level="DEBUG", file=str(log_file)))

    logger.bind(provider="triton", name="master").info("Created instance {id}", id="i-123")

    for handler in logging.getLogger("nodeward").handlers:
        handler.flush()
    text = log_file.read_text()
    assert "Created instance i-123 [provider=triton name=master]" in text
    assert "INFO" in text


def test_console_sink_respects_level(handler_ids: list[int]):
    stream = io.StringIO()
    handler_ids.append(logger.add(stream, level="WARNING"))
    logger.enable()

    logger.info("quiet")
    logger.warning("loud {n}", n=1)

    output = stream.getvalue()
    assert "loud 1" in output
    assert "quiet" not in output


def test_teardown_silences_library(tmp_path: Path):
    log_file = tmp_path / "nodeward.log"
    ids = setup_logging(LogConfig(file=str(log_file)))
    teardown_logging(ids)

    logger.info("after teardown")

    assert "after teardown" not in log_file.read_text()
    assert logging.getLogger("nodeward").disabled
