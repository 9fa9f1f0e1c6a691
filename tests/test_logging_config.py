import io
import json
import logging

import pytest
import structlog

from lbp_sale.logging_config import PACKAGE_LOGGER, bind_session, setup_logging


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


def test_json_lines_for_stdlib_and_structlog(package_logger):
    stream = io.StringIO()
    setup_logging("INFO", json_logs=True, stream=stream)
    bind_session("terra1x46rqay4d3cssq8gxxvqz8xt6nwlz4td20k38v", "columbus-5")

    logging.getLogger("lbp_sale.core.session").info("Wallet changed")
    structlog.stdlib.get_logger("lbp_sale.swap").info("swap_submitted", tx_hash="ABC")
    logging.getLogger("lbp_sale.core.monitor").debug("hidden below INFO")

    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert [line["event"] for line in lines] == ["Wallet changed", "swap_submitted"]
    assert lines[1]["tx_hash"] == "ABC"
    assert lines[1]["logger"] == "lbp_sale.swap"
    assert all(line["chain_id"] == "columbus-5" for line in lines)


def test_levels_and_single_handler(package_logger):
    setup_logging("DEBUG", stream=io.StringIO())
    setup_logging("DEBUG", stream=io.StringIO())

    assert package_logger.level == logging.DEBUG
    assert len([h for h in package_logger.handlers if h.get_name() == PACKAGE_LOGGER]) == 1
    assert not package_logger.propagate
    assert logging.getLogger("httpx").level == logging.WARNING


def test_unknown_level_falls_back_to_info(package_logger):
    setup_logging("chatty", stream=io.StringIO())

    assert package_logger.level == logging.INFO


def test_bind_session_replaces_context():
    structlog.contextvars.bind_contextvars(stale="value")

    bind_session("terra1x46rqay4d3cssq8gxxvqz8xt6nwlz4td20k38v", "columbus-5")

    assert structlog.contextvars.get_contextvars() == {
        "wallet": "terra1x46rqay4d3cssq8gxxvqz8xt6nwlz4td20k38v",
        "chain_id": "columbus-5",
    }
    structlog.contextvars.clear_contextvars()
