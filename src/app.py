#!/usr/bin/env python
"""This module is main entrypoint of the application"""
import asyncio
import sys

from exchange_engine.console import ExchangeConsole
from exchange_engine.core import ExchangeEngine
from exchange_engine.entities import Config
from exchange_engine.helpers import load_exchange_config


async def serve(config: Config) -> None:
    """
    Run the engine with its refresh timer for as long as the console reads commands

    :param config: Config: engine configuration

    """
    async with ExchangeEngine(config=config) as engine:
        console = ExchangeConsole(engine=engine, in_stream=sys.stdin, out_stream=sys.stdout)
        await console.run()


def main():
    """
    Entrypoint to the application:
        - Load app config
        - Initialize and run ExchangeEngine behind an ExchangeConsole

    """
    config_path = sys.argv[1]
    config = load_exchange_config(config_path)
    asyncio.run(serve(config))


if __name__ == '__main__':
    main()
