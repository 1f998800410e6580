"""This module contains the class ExchangeEngine which implements the core logic of the Exchange Engine"""

import asyncio
import math
import random
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from exchange_engine.entities import (DEFAULT_FEE_RATE, Config, Currency, TradeKind, TradeQuote,
                                      Transaction)
from exchange_engine.errors import InsufficientBalanceError, RefreshFailure, ValidationError
from exchange_engine.favorites import FavoriteSet
from exchange_engine.helpers import get_configured_logger, percentage_change
from exchange_engine.ledger import TransactionLog
from exchange_engine.rates import RateTable
from exchange_engine.wallet import Wallet

REFRESH_ERROR_MESSAGE = "Failed to refresh rates. Please try again."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExchangeEngine:
    """
    Single-user, in-memory exchange and ledger engine that:
        - Holds the rate table and converts amounts between currencies through the base currency
        - Executes buy/sell/exchange trades against the wallet and records them in the transaction log
        - Periodically perturbs the rate table to simulate market movement
        - Keeps a set of favorite currencies

    ExchangeEngine state consists of:
        :_rates: RateTable: current quotes, replaced as a whole on every refresh
        :_wallet: Wallet: balances per currency code
        :_transactions: TransactionLog: executed trades, newest first
        :_favorites: FavoriteSet: favorite currency codes
        :_fee_rates: Dict[TradeKind, float]: fee policy per trade kind
        :loading: bool: True while at least one refresh is in progress
        :last_error: Optional[str]: message of the last failed operation

    Callers must not run execute_trade concurrently on the same engine; operations are not serialized internally.
    """

    def __init__(self, config: Config, rng: Optional[random.Random] = None,
                 clock: Callable[[], datetime] = utc_now):
        """
        Initializes ExchangeEngine based on given configuration. The refresh timer is not started here.

        :param config: Config: Engine Configuration
        :param rng: Optional[random.Random]:  (Default value = None) randomness for rate simulation
        :param clock: Callable[[], datetime]:  (Default value = utc_now) timestamp source for transactions

        """
        self.logger = get_configured_logger(self.__class__.__name__)
        self._rates = RateTable(config.currencies.values(), config.base_currency)
        self._previous_rates = self._rates
        self._wallet = Wallet(config.wallet)
        self._transactions = TransactionLog()
        self._favorites = FavoriteSet(config.favorites)
        self._fee_rates = dict(config.fee_rates)
        self._refresh_interval = config.refresh_interval
        self._refresh_latency = config.refresh_latency
        self._rng = rng or random.Random()
        self._clock = clock
        self._refresh_task: Optional[asyncio.Task] = None
        self._refreshes_in_flight = 0
        self.loading = False
        self.last_error: Optional[str] = None

    async def __aenter__(self) -> "ExchangeEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()

    @property
    def base_currency(self) -> str:
        return self._rates.base_currency

    @property
    def running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def start(self) -> None:
        """
        Refresh rates once and schedule periodic refreshes every refresh interval.
        Does nothing if the timer is already running.

        """
        if self.running:
            self.logger.debug("refresh timer already running")
            return
        await self.refresh_rates()
        self._refresh_task = asyncio.create_task(self._refresh_periodically())
        self.logger.info("refresh timer started", interval=self._refresh_interval)

    async def close(self) -> None:
        """Cancel the refresh timer; an in-flight refresh is cancelled with it. Cancelling close() itself propagates"""
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        await asyncio.wait([task])
        self.logger.info("refresh timer stopped")

    async def _refresh_periodically(self) -> None:
        while True:
            await asyncio.sleep(self._refresh_interval)
            await self.refresh_rates()

    async def refresh_rates(self) -> None:
        """
        Simulate a market update:
            - enter loading state and clear the previous error
            - wait for the simulated network latency
            - build a perturbed rate table and swap it in as a whole
            - on failure, set last_error and keep the previous table

        """
        self._refreshes_in_flight += 1
        self.loading = True
        self.last_error = None
        self.logger.info("CHECKPOINT: start refreshing rates")
        try:
            await asyncio.sleep(self._refresh_latency)
            try:
                rates = self._rates.perturbed(self._rng)
            except (ArithmeticError, ValueError) as e:
                raise RefreshFailure(str(e)) from e
            self._previous_rates, self._rates = self._rates, rates
            self.logger.info("rates refreshed", currency_count=len(rates))
        except Exception:
            self.last_error = REFRESH_ERROR_MESSAGE
            self.logger.error("rate refresh failed")
        finally:
            self._refreshes_in_flight -= 1
            self.loading = self._refreshes_in_flight > 0
            self.logger.info("CHECKPOINT: end refreshing rates")

    def list_currencies(self) -> List[Currency]:
        return self._rates.currencies()

    def get_currency(self, code: str) -> Optional[Currency]:
        return self._rates.get(code)

    def rate(self, code: str) -> Optional[float]:
        return self._rates.rate(code)

    def rate_move(self, code: str) -> Optional[float]:
        """Percentage move of the rate of given currency since the previous refresh, None if unknown"""
        rate = self._rates.rate(code)
        if rate is None:
            return None
        return percentage_change(self._previous_rates.rate(code) or 0.0, rate)

    def convert(self, amount: float, from_code: str, to_code: str) -> float:
        """
        Convert amount between currencies using the current rate table.
        Unregistered codes yield 0.0; callers are expected to pass registered codes.

        :param amount: float: amount in from_code units
        :param from_code: str: source currency code
        :param to_code: str: target currency code

        """
        return self._rates.convert(amount, from_code, to_code)

    def get_wallet(self) -> Dict[str, float]:
        return self._wallet.snapshot()

    def get_transactions(self, kind: Optional[TradeKind] = None) -> List[Transaction]:
        return self._transactions.snapshot(kind)

    def get_portfolio_value(self, code: Optional[str] = None) -> float:
        """Total value of the wallet expressed in given currency, base currency by default"""
        return self._wallet.total_value(self._rates, code or self.base_currency)

    def get_allocation(self) -> List[Tuple[str, float, float]]:
        """Per-currency (code, value in base, percentage) of positive holdings, largest share first"""
        return self._wallet.allocation(self._rates)

    def fee_rate(self, kind: TradeKind) -> float:
        return self._fee_rates.get(kind, DEFAULT_FEE_RATE)

    def quote_trade(self, kind: TradeKind, from_code: str, to_code: str, from_amount: float) -> TradeQuote:
        """
        Price a trade against the current rate table without changing any state.
        Only exchange trades have the fee deducted from the credited amount; buy and sell record it only.

        :param kind: TradeKind: kind of trade
        :param from_code: str: currency to debit
        :param to_code: str: currency to credit
        :param from_amount: float: amount of from_code to trade
        :returns: TradeQuote: amounts the trade would produce
        :raises: ValidationError: if kind is unknown, amount is not finite-positive, codes are unknown or identical

        """
        try:
            kind = TradeKind(kind)
        except ValueError as e:
            raise ValidationError(f"Unknown trade kind: {kind}") from e
        if isinstance(from_amount, bool) or not isinstance(from_amount, (int, float)) \
                or not math.isfinite(from_amount) or from_amount <= 0:
            raise ValidationError(f"Invalid amount: {from_amount}")
        for code in (from_code, to_code):
            if code not in self._rates:
                raise ValidationError(f"Unknown currency: {code}")
        if from_code == to_code:
            raise ValidationError(f"Cannot trade {from_code} for itself")
        to_amount = self._rates.convert(from_amount, from_code, to_code)
        fee_rate = self.fee_rate(kind)
        fee = from_amount * fee_rate
        credited = to_amount - fee if kind == TradeKind.EXCHANGE else to_amount
        return TradeQuote(
            kind=kind,
            source_currency=from_code,
            target_currency=to_code,
            source_amount=from_amount,
            target_amount=to_amount,
            effective_rate=self._rates.convert(1, from_code, to_code),
            fee_rate=fee_rate,
            fee=fee,
            credited_amount=credited)

    async def execute_trade(self, kind: TradeKind, from_code: str, to_code: str, from_amount: float) -> bool:
        """
        Execute a trade against the wallet:
            - reject without mutation if the request is invalid, the balance is insufficient
              or the credited amount would not be positive
            - debit from_amount and credit the converted amount (less fee for exchange) together
            - record a Transaction at the front of the log
            - failures are reported through last_error and a False return, never raised

        :param kind: TradeKind: kind of trade
        :param from_code: str: currency to debit
        :param to_code: str: currency to credit
        :param from_amount: float: amount of from_code to trade
        :returns: bool: True if the trade was executed

        """
        trade_logger = self.logger.bind(trade_id=uuid.uuid4().hex)
        try:
            quote = self.quote_trade(kind, from_code, to_code, from_amount)
            available = self._wallet.balance(from_code)
            if available < from_amount:
                raise InsufficientBalanceError(from_code, available, from_amount)
            if quote.credited_amount <= 0:
                raise ValidationError(f"Amount does not cover the fee: {from_amount} {from_code}")
            self._wallet.transfer(from_code, from_amount, to_code, quote.credited_amount)
        except ValueError as e:
            self.last_error = str(e)
            trade_logger.info("trade rejected", kind=getattr(kind, "value", kind), source=from_code, target=to_code,
                              amount=from_amount, reason=e)
            return False
        trade_logger.info("wallet updated", source=from_code, debited=from_amount,
                          target=to_code, credited=quote.credited_amount)
        transaction = Transaction(
            id=trade_logger.extra["trade_id"],
            kind=quote.kind,
            source_currency=from_code,
            target_currency=to_code,
            source_amount=from_amount,
            target_amount=quote.target_amount,
            effective_rate=quote.effective_rate,
            timestamp=self._clock(),
            fee=quote.fee)
        self._transactions.record(transaction)
        trade_logger.info("transaction recorded", kind=quote.kind.value, rate=quote.effective_rate, fee=quote.fee)
        return True

    def get_favorites(self) -> List[Currency]:
        return self._favorites.select(self._rates.currencies())

    def add_favorite(self, code: str) -> None:
        if self._favorites.add(code):
            self.logger.info("favorite added", code=code)

    def remove_favorite(self, code: str) -> None:
        if self._favorites.remove(code):
            self.logger.info("favorite removed", code=code)
