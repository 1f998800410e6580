"""This module contains the exceptions raised inside ExchangeEngine"""


class ExchangeError(ValueError):
    """Base class of every error reported through ExchangeEngine.last_error"""


class ValidationError(ExchangeError):
    """Trade request is malformed: non-finite or non-positive amount, unknown or identical currencies"""


class InsufficientBalanceError(ExchangeError):
    """Trade amount exceeds the available balance of the source currency"""

    def __init__(self, code: str, available: float, requested: float):
        super().__init__("Insufficient balance")
        self.code = code
        self.available = available
        self.requested = requested


class RefreshFailure(ExchangeError):
    """Rate simulation step failed; the previous rate table is kept"""
