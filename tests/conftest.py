import logging
import random
from datetime import datetime, timezone
from io import StringIO

import pytest
from pytest_mock import MockerFixture

from common.logging_adapter import KeyValContextLogger
from exchange_engine.core import ExchangeEngine
from exchange_engine.entities import Config, Currency


@pytest.fixture
def log_stream():
    return StringIO("")


@pytest.fixture
def string_logger(log_stream):
    formatter = logging.Formatter("level=%(levelname)s logger=%(name)s %(message)s")
    handler = logging.StreamHandler(stream=log_stream)
    handler.setLevel("DEBUG")
    handler.setFormatter(formatter)
    a_logger = logging.getLogger("string_logger")
    a_logger.propagate = False
    a_logger.setLevel("DEBUG")
    a_logger.handlers = [handler]
    return KeyValContextLogger(logger=a_logger)


@pytest.fixture
def currencies_fixture():
    return {cur.code: cur for cur in [
        Currency("INR", "Indian Rupee", "₹", 1.0, 0.0),
        Currency("USD", "US Dollar", "$", 0.012, 0.45),
        Currency("EUR", "Euro", "€", 0.011, -0.2),
        Currency("GBP", "British Pound", "£", 0.0094, 0.1),
        Currency("JPY", "Japanese Yen", "¥", 1.81, -0.33),
    ]}


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 5, 21, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_engine(currencies_fixture, string_logger, fixed_clock, mocker: MockerFixture):
    mocker.patch("exchange_engine.core.get_configured_logger").return_value = string_logger

    def factory(wallet=None, **kwargs):
        config = Config(currencies=dict(currencies_fixture), wallet=wallet or {"INR": 1000.0}, refresh_latency=0.0,
                        **kwargs)
        return ExchangeEngine(config=config, rng=random.Random(42), clock=fixed_clock)
    return factory


@pytest.fixture
def engine_fixture(make_engine):
    return make_engine()
