"""This module contains the Wallet: balances per currency code, and portfolio valuation over a RateTable"""

from typing import Dict, List, Mapping, Tuple

from exchange_engine.rates import RateTable


class Wallet:
    """
    Mapping of currency code to non-negative balance. A missing code has balance 0.
    Balances change only through `transfer`, which applies debit and credit together or not at all.
    """

    def __init__(self, balances: Mapping[str, float]):
        for code, balance in balances.items():
            if balance < 0:
                raise ValueError(f"Balance must be non-negative: {code}={balance}")
        self._balances: Dict[str, float] = dict(balances)

    def balance(self, code: str) -> float:
        return self._balances.get(code, 0.0)

    def snapshot(self) -> Dict[str, float]:
        return dict(self._balances)

    def transfer(self, debit_code: str, debit_amount: float, credit_code: str, credit_amount: float) -> None:
        """
        Debit one balance and credit another as a single update

        :param debit_code: str: currency to take debit_amount from
        :param debit_amount: float: amount removed from debit_code
        :param credit_code: str: currency to add credit_amount to
        :param credit_amount: float: amount added to credit_code
        :raises: ValueError: if either resulting balance would be negative; balances are left unchanged
        """
        updated = dict(self._balances)
        updated[debit_code] = updated.get(debit_code, 0.0) - debit_amount
        updated[credit_code] = updated.get(credit_code, 0.0) + credit_amount
        for code in (debit_code, credit_code):
            if updated[code] < 0:
                raise ValueError(f"Balance would become negative: {code}={updated[code]}")
        self._balances = updated

    def total_value(self, rates: RateTable, code: str) -> float:
        """
        Sum of all balances expressed in given currency

        :param rates: RateTable: quotes used for conversion
        :param code: str: currency to express the total in
        """
        return sum(rates.convert(amount, held, code) for held, amount in self._balances.items())

    def allocation(self, rates: RateTable) -> List[Tuple[str, float, float]]:
        """
        Share of each positive holding in the total value, largest first

        :param rates: RateTable: quotes used for conversion
        :returns: list of (code, value in base currency, percentage of total)
        """
        base = rates.base_currency
        values = [(held, rates.convert(amount, held, base)) for held, amount in self._balances.items() if amount > 0]
        total = sum(value for _, value in values)
        if total == 0:
            return []
        shares = [(held, value, value / total * 100) for held, value in values]
        return sorted(shares, key=lambda share: share[2], reverse=True)
