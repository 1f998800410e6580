"""This module holds helper functions for the Exchange Engine"""

import json
import logging
import logging.config
import re
from typing import Optional

from common.logging_adapter import KeyValContextLogger
from exchange_engine.entities import (BASE_CURRENCY, DEFAULT_FAVORITES, DEFAULT_FEE_RATE, REFRESH_INTERVAL_SECONDS,
                                      REFRESH_LATENCY_SECONDS, Config, Currency, TradeKind)

AMOUNT_INPUT_PATTERN = re.compile(r"^(\d+)?(\.\d{0,2})?$")
COMPACT_SUFFIXES = ((1e9, "B"), (1e6, "M"), (1e3, "K"))


def load_exchange_config(config_path: str) -> Config:
    """
    Load config for the exchange engine from given JSON file

    :param config_path: str: path to config JSON file
    :returns: Instance of Config
    :raises: ValueError: if a trade kind in fee_rates is unknown or a value is out of range

    """
    with open(config_path, encoding='utf-8') as fp:
        config_json = json.load(fp)
    currencies = {}
    for code, currency_obj in config_json["currencies"].items():
        currencies[code] = Currency(
            code=code,
            name=currency_obj.get("name", code),
            symbol=currency_obj.get("symbol", code),
            rate=float(currency_obj["rate"]),
            change_24h=float(currency_obj.get("change_24h", 0.0)),
            flag=currency_obj.get("flag", ""),
            color=currency_obj.get("color", "#000000"))
    fee_rates = {kind: DEFAULT_FEE_RATE for kind in TradeKind}
    for kind, rate in config_json.get("fee_rates", {}).items():
        fee_rates[TradeKind(kind)] = float(rate)
    refresh = config_json.get("refresh", {})
    return Config(
        currencies=currencies,
        base_currency=config_json.get("base_currency", BASE_CURRENCY),
        wallet={code: float(amount) for code, amount in config_json.get("wallet", {}).items()},
        favorites=list(config_json.get("favorites", DEFAULT_FAVORITES)),
        fee_rates=fee_rates,
        refresh_interval=float(refresh.get("interval_seconds", REFRESH_INTERVAL_SECONDS)),
        refresh_latency=float(refresh.get("latency_seconds", REFRESH_LATENCY_SECONDS)))


def get_configured_logger(name: str, config_path: str = "config/logging_dict_config.json") -> KeyValContextLogger:
    """
    Create a KeyValContextLogger instance using given logger if configured in dict config JSON file

    :param name: str: name of logger in dict config
    :param config_path: str: path to JSON file containing dict config
    :returns: Instance of KeyValContextLogger
    :raises: ValueError: if given logger name is not configured in logging dict config

    """
    with open(config_path, encoding='utf-8') as fp:
        config_json = json.load(fp)
    if name not in config_json["loggers"]:
        raise ValueError(f"Logger not configured in {config_path}: {name}")
    logging.config.dictConfig(config_json)
    return KeyValContextLogger(logger=logging.getLogger(name))


def format_currency(amount: float, code: str, symbol: Optional[str] = None, decimal_places: int = 2) -> str:
    """
    Format amount prefixed with a currency symbol, falling back to the code itself

    :param amount: float: amount to format
    :param code: str: currency code
    :param symbol: Optional[str]:  (Default value = None) symbol to use instead of the code
    :param decimal_places: int:  (Default value = 2) number of decimals
    """
    return f"{symbol or code}{amount:.{decimal_places}f}"


def format_compact_number(number: float) -> str:
    """Format a number with K, M or B suffix, e.g. 1500 -> 1.5K"""
    for threshold, suffix in COMPACT_SUFFIXES:
        if number >= threshold:
            return f"{number / threshold:.1f}{suffix}"
    return f"{number:g}"


def percentage_change(old_value: float, new_value: float) -> float:
    """Relative change from old_value to new_value in percent, 0 when old_value is 0"""
    if old_value == 0:
        return 0.0
    return (new_value - old_value) / old_value * 100


def is_valid_amount_input(text: str) -> bool:
    """Accept digits with an optional decimal point and at most 2 decimals"""
    return AMOUNT_INPUT_PATTERN.match(text) is not None
