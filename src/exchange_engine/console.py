"""This module contains the class ExchangeConsole which drives an ExchangeEngine from a text command stream"""

import asyncio
import uuid
from typing import Awaitable, Callable, Dict, Optional, TextIO

from exchange_engine.core import ExchangeEngine
from exchange_engine.entities import Transaction, TradeKind
from exchange_engine.helpers import (format_compact_number, format_currency, get_configured_logger,
                                     is_valid_amount_input)


def parse_amount(text: str) -> float:
    if not is_valid_amount_input(text):
        raise ValueError(f"Invalid amount: {text}")
    return float(text)


class ExchangeConsole:
    """
    A console that:
        - Reads commands line by line from the input stream until `quit`
        - Dispatches each command to the engine and publishes the result to the output stream

    ExchangeConsole state consists of:
        :engine: ExchangeEngine: engine commands are executed against
        :in_stream: TextIO: text stream to read input commands from
        :out_stream: TextIO: text stream to write resulting output to
        :_processors: Dict[str, Callable[..., Awaitable[None]]]: a mapping from command word to its processor
    """

    def __init__(self, engine: ExchangeEngine, in_stream: TextIO, out_stream: TextIO):
        self.logger = get_configured_logger(self.__class__.__name__)
        self.engine = engine
        self.in_stream = in_stream
        self.out_stream = out_stream
        self._processors: Dict[str, Callable[..., Awaitable[None]]] = {
            "rates": self.on_rates,
            "wallet": self.on_wallet,
            "portfolio": self.on_portfolio,
            "history": self.on_history,
            "convert": self.on_convert,
            "quote": self.on_quote,
            "buy": self.on_trade(TradeKind.BUY),
            "sell": self.on_trade(TradeKind.SELL),
            "exchange": self.on_trade(TradeKind.EXCHANGE),
            "refresh": self.on_refresh,
            "favorites": self.on_favorites,
            "favorite": self.on_favorite,
            "unfavorite": self.on_unfavorite,
        }

    async def run(self) -> None:
        """
        Keep reading input commands and process them in order until `quit` or end of stream.
        For each command, set a new UUID as correlation id into the log-context.
        Lines are read off the event loop so the engine's refresh timer keeps running.

        """
        while True:
            self.logger.extra = dict(correlation_id=str(uuid.uuid4()))
            line = await asyncio.to_thread(self.in_stream.readline)
            command = line.strip()
            if command == "quit" or not line:
                self.logger.info("CHECKPOINT: Exit", command=command)
                break
            await self.process_one(command)

    async def process_one(self, command: str) -> None:
        """
        Process a single command with error handling

        :param command: str: command to process

        """
        try:
            self.logger.info("CHECKPOINT: start processing command", command=command)
            parts = command.split()
            cmd, args = parts[0], parts[1:]
            await self._processors[cmd](*args)
        except IndexError:
            self.logger.warning("blank command", valid=list(self._processors.keys()), command=command)
        except KeyError:
            self.logger.error("unknown command", valid=list(self._processors.keys()), command=command)
        except TypeError:
            self.logger.error("invalid args", command=command)
        except ValueError:
            self.logger.error("command failed", command=command)
            self.publish(f"Invalid command: {command}")
        finally:
            self.logger.info("CHECKPOINT: end processing command", command=command)

    async def on_rates(self) -> None:
        """Publish every currency as `<CODE> <RATE> <CHANGE>% move=<MOVE>%`, base currency first"""
        for currency in self.engine.list_currencies():
            move = self.engine.rate_move(currency.code)
            self.publish(f"{currency.code} {currency.rate:.4f} {currency.change_24h:+.2f}% move={move:+.3f}%")

    async def on_wallet(self) -> None:
        """Publish every balance in the wallet with its currency symbol"""
        for code, balance in self.engine.get_wallet().items():
            currency = self.engine.get_currency(code)
            self.publish(f"{code} {format_currency(balance, code, currency.symbol if currency else None)}")

    async def on_portfolio(self) -> None:
        """Publish total wallet value in base currency, then the share of each holding"""
        base = self.engine.base_currency
        total = self.engine.get_portfolio_value()
        self.publish(f"TOTAL {base} {total:.2f} ({format_compact_number(total)})")
        for code, value, percentage in self.engine.get_allocation():
            self.publish(f"{code} {base} {value:.2f} {percentage:.1f}%")

    async def on_history(self, kind: Optional[str] = None) -> None:
        """
        Publish executed trades newest first, optionally only one kind

        :param kind: Optional[str]:  (Default value = None) buy, sell or exchange

        """
        transactions = self.engine.get_transactions(None if kind is None else TradeKind(kind))
        if not transactions:
            self.publish("No transactions")
        for transaction in transactions:
            self.publish(self.describe(transaction))

    async def on_convert(self, amount: str, from_code: str, to_code: str) -> None:
        """Publish `<AMOUNT> <FROM> = <CONVERTED> <TO>`"""
        value = parse_amount(amount)
        converted = self.engine.convert(value, from_code, to_code)
        self.publish(f"{value:.2f} {from_code} = {converted:.4f} {to_code}")

    async def on_quote(self, kind: str, from_code: str, to_code: str, amount: str) -> None:
        """Publish the preview of a trade; nothing is executed"""
        quote = self.engine.quote_trade(TradeKind(kind), from_code, to_code, parse_amount(amount))
        self.publish(f"{quote.kind.value} {quote.source_amount:.2f} {from_code} -> {quote.credited_amount:.4f} "
                     f"{to_code} rate={quote.effective_rate:.4f} fee={quote.fee:.4f} ({quote.fee_rate:.2%})")

    def on_trade(self, kind: TradeKind) -> Callable[[str, str, str], Awaitable[None]]:
        """
        Build the processor of one trade command: `<kind> <FROM> <TO> <AMOUNT>`

        :param kind: TradeKind: kind of trade the processor executes

        """
        async def processor(from_code: str, to_code: str, amount: str) -> None:
            if await self.engine.execute_trade(kind, from_code, to_code, parse_amount(amount)):
                self.publish(self.describe(self.engine.get_transactions()[0]))
            else:
                self.publish(f"Trade failed: {self.engine.last_error}")
        return processor

    async def on_refresh(self) -> None:
        await self.engine.refresh_rates()
        self.publish(self.engine.last_error or "Rates refreshed")

    async def on_favorites(self) -> None:
        favorites = self.engine.get_favorites()
        self.publish(" ".join(currency.code for currency in favorites) if favorites else "No favorites")

    async def on_favorite(self, code: str) -> None:
        self.engine.add_favorite(code)

    async def on_unfavorite(self, code: str) -> None:
        self.engine.remove_favorite(code)

    @staticmethod
    def describe(transaction: Transaction) -> str:
        return (f"{transaction.id} {transaction.kind.value} {transaction.source_amount:.2f} "
                f"{transaction.source_currency} -> {transaction.target_amount:.4f} {transaction.target_currency} "
                f"fee={transaction.fee:.4f}")

    def publish(self, message: str):
        """
        Write given message to the output stream of this console

        :param message: str: text to publish

        """
        print(message, file=self.out_stream)
