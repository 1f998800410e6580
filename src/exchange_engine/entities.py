"""This module contains entity-definitions that constitute the data and state of ExchangeEngine"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List

BASE_CURRENCY = "INR"
SEED_BALANCE = 100000.0
DEFAULT_FAVORITES = ("USD", "EUR", "GBP")
DEFAULT_FEE_RATE = 0.002
REFRESH_INTERVAL_SECONDS = 30.0
REFRESH_LATENCY_SECONDS = 1.0


class TradeKind(str, Enum):
    """Kind of trade: buy (base -> other), sell (other -> base), exchange (other -> other)"""

    BUY = "buy"
    SELL = "sell"
    EXCHANGE = "exchange"


@dataclass(frozen=True)
class Currency:
    """
    Currency represents one entry of the rate table.
    `rate` is the quote of 1 unit of base currency in this currency, `change_24h` a signed percentage.
    This class is immutable: a refresh produces new instances rather than mutating existing ones.
    """
    code: str
    name: str
    symbol: str
    rate: float
    change_24h: float = field(default=0.0)
    flag: str = field(default="")
    color: str = field(default="#000000")


@dataclass(frozen=True)
class Transaction:
    """
    Transaction is the immutable record of one executed trade.
    `fee` is expressed in units of the source currency.
    """
    id: str
    kind: TradeKind
    source_currency: str
    target_currency: str
    source_amount: float
    target_amount: float
    effective_rate: float
    timestamp: datetime
    fee: float


@dataclass(frozen=True)
class TradeQuote:
    """
    TradeQuote previews a trade against the current rate table without touching the wallet.
    `credited_amount` is what the target balance would actually receive.
    """
    kind: TradeKind
    source_currency: str
    target_currency: str
    source_amount: float
    target_amount: float
    effective_rate: float
    fee_rate: float
    fee: float
    credited_amount: float


@dataclass(frozen=False)
class Config:
    """
    Config models the initial state of the engine: registered currencies, seed wallet, favorites,
    per-kind fee policy and refresh timings. The base currency is the quote currency of every rate.
    """
    currencies: Dict[str, Currency]
    base_currency: str = field(default=BASE_CURRENCY)
    wallet: Dict[str, float] = field(default_factory=dict)
    favorites: List[str] = field(default_factory=lambda: list(DEFAULT_FAVORITES))
    fee_rates: Dict[TradeKind, float] = field(
        default_factory=lambda: {kind: DEFAULT_FEE_RATE for kind in TradeKind})
    refresh_interval: float = field(default=REFRESH_INTERVAL_SECONDS)
    refresh_latency: float = field(default=REFRESH_LATENCY_SECONDS)

    def __post_init__(self):
        if not self.wallet:
            self.wallet = {self.base_currency: SEED_BALANCE}
        for code, balance in self.wallet.items():
            if balance < 0:
                raise ValueError(f"Seed balance must be non-negative: {code}={balance}")
        for kind, rate in self.fee_rates.items():
            if not isinstance(kind, TradeKind):
                raise ValueError(f"Unknown trade kind in fee rates: {kind}")
            if not 0 <= rate < 1:
                raise ValueError(f"Fee rate must be within [0, 1): {kind.value}={rate}")
        if self.refresh_interval <= 0:
            raise ValueError(f"Refresh interval must be positive: {self.refresh_interval}")
        if self.refresh_latency < 0:
            raise ValueError(f"Refresh latency must be non-negative: {self.refresh_latency}")
