"""This module contains the RateTable: quotes of every registered currency against the base currency"""

import math
import random
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from exchange_engine.entities import Currency

RATE_PRECISION = 6
CHANGE_PRECISION = 2
MAX_RATE_DRIFT = 0.005
MAX_CHANGE_DRIFT = 0.1


class RateTable:
    """
    Immutable, star-shaped quote table: every non-base currency is quoted only against the base currency.
    Cross conversions are routed through the base currency. Iteration order is registration order.
    """

    def __init__(self, currencies: Iterable[Currency], base_currency: str):
        self._base_currency = base_currency
        self._currencies: Dict[str, Currency] = {}
        for currency in currencies:
            if currency.code == base_currency:
                currency = replace(currency, rate=1.0, change_24h=0.0)
            elif not (math.isfinite(currency.rate) and currency.rate > 0):
                raise ValueError(f"Rate must be finite and positive: {currency.code}={currency.rate}")
            self._currencies[currency.code] = currency
        if base_currency not in self._currencies:
            self._currencies[base_currency] = Currency(
                code=base_currency, name=base_currency, symbol=base_currency, rate=1.0)

    @property
    def base_currency(self) -> str:
        return self._base_currency

    def __contains__(self, code: str) -> bool:
        return code in self._currencies

    def __len__(self) -> int:
        return len(self._currencies)

    def currencies(self) -> List[Currency]:
        return list(self._currencies.values())

    def get(self, code: str) -> Optional[Currency]:
        return self._currencies.get(code)

    def rate(self, code: str) -> Optional[float]:
        """
        Return the quote of 1 unit of base currency in given currency, None if the code is not registered

        :param code: str: currency code
        """
        currency = self._currencies.get(code)
        return None if currency is None else currency.rate

    def convert(self, amount: float, from_code: str, to_code: str) -> float:
        """
        Convert amount between two currencies, routing through the base currency. No rounding is applied.
            - from base: amount * rate(to)
            - to base: amount / rate(from)
            - otherwise: amount / rate(from) * rate(to)
            - same currency: amount unchanged
            - unregistered code on either side: 0.0

        :param amount: float: amount in from_code units
        :param from_code: str: source currency code
        :param to_code: str: target currency code
        :returns: float: equivalent amount in to_code units
        """
        from_rate, to_rate = self.rate(from_code), self.rate(to_code)
        if from_rate is None or to_rate is None:
            return amount * 0.0
        if from_code == to_code:
            return amount
        if from_code == self._base_currency:
            return amount * to_rate
        if to_code == self._base_currency:
            return amount / from_rate
        return (amount / from_rate) * to_rate

    def perturbed(self, rng: random.Random) -> "RateTable":
        """
        Build a new table simulating market movement: every non-base rate drifts by up to +/-0.5%
        (multiplicative), every non-base change_24h by up to +/-0.1 percentage points (additive).
        Self is left untouched; a rate rounding down to zero raises ValueError.

        :param rng: random.Random: source of randomness
        :returns: RateTable: the perturbed table
        """
        updated = []
        for currency in self._currencies.values():
            if currency.code != self._base_currency:
                rate = currency.rate * (1 + rng.uniform(-MAX_RATE_DRIFT, MAX_RATE_DRIFT))
                change = currency.change_24h + rng.uniform(-MAX_CHANGE_DRIFT, MAX_CHANGE_DRIFT)
                currency = replace(
                    currency, rate=round(rate, RATE_PRECISION), change_24h=round(change, CHANGE_PRECISION))
            updated.append(currency)
        return RateTable(updated, self._base_currency)
