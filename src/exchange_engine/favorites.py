"""This module contains the FavoriteSet of currency codes"""

from typing import Dict, Iterable, List

from exchange_engine.entities import Currency


class FavoriteSet:
    """
    Insertion-ordered set of currency codes, independent of balances.
    Codes are not validated; favorites are filtered through the live currency list on every read.
    """

    def __init__(self, codes: Iterable[str] = ()):
        # dict used as an ordered set
        self._codes: Dict[str, None] = dict.fromkeys(codes)

    def __contains__(self, code: str) -> bool:
        return code in self._codes

    def codes(self) -> List[str]:
        return list(self._codes)

    def add(self, code: str) -> bool:
        """Add code, return False if it was already present"""
        if code in self._codes:
            return False
        self._codes[code] = None
        return True

    def remove(self, code: str) -> bool:
        """Remove code, return False if it was not present"""
        if code not in self._codes:
            return False
        del self._codes[code]
        return True

    def select(self, currencies: Iterable[Currency]) -> List[Currency]:
        """Return the currencies that are favorites, in the order given"""
        return [currency for currency in currencies if currency.code in self._codes]
