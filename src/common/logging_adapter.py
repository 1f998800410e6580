"""This module contains class KeyValContextLogger - a key-value structured adapter over logging.LoggerAdapter"""

import logging
import sys
from typing import Any, Tuple

RESERVED_KEYS = ("exc_info", "extra", "stack_info", "stacklevel")


def format_value(value: Any) -> str:
    """
    Render a single log value, replacing double quotes so pairs stay parseable

    :param value: any value passed as a log keyword
    :returns: str: text for the value
    """
    return str(value).replace('"', "'")


class KeyValContextLogger(logging.LoggerAdapter):
    """
    LoggerAdapter that renders every record as `event="..." key="value" ...` pairs.
    Context (correlation id, trade id, ...) lives in `extra` and is appended to every record.
    """

    def __init__(self, logger, **context):
        super().__init__(logger, extra=context)

    def bind(self, **context) -> "KeyValContextLogger":
        """
        Create a child adapter sharing the underlying logger with additional context

        :param context: key-values appended to every record of the child
        :returns: KeyValContextLogger: new adapter, self is left untouched
        """
        merged = dict(self.extra)
        merged.update(context)
        return KeyValContextLogger(self.logger, **merged)

    def process(self, msg, kwargs) -> Tuple[str, dict[str, Any]]:
        """
        Split logging-reserved kwargs from context kwargs and format the latter as key-value pairs

        :param msg: event name
        :param kwargs: keyword arguments given to the logging call
        :returns: tuple of formatted message and the reserved kwargs understood by logging.Logger
        """
        reserved = {k: kwargs.pop(k) for k in RESERVED_KEYS if k in kwargs}
        pairs = dict(event=msg)
        pairs.update(kwargs)
        pairs.update(self.extra)
        return " ".join(f'{k}="{format_value(v)}"' for k, v in pairs.items()), reserved

    def error(self, msg, *args, **kwargs) -> None:
        """
        Log at ERROR level; when called while handling an exception, attach its type, message and traceback

        :param msg: error log message
        :param args: positional arguments delegated to logging
        :param kwargs: keyword arguments delegated to logging
        """
        exc_type, exc_value, _ = sys.exc_info()
        if exc_type is None:
            super().error(msg, *args, **kwargs)
            return
        kwargs["error_type"] = exc_type.__name__
        kwargs["error_message"] = exc_value
        kwargs["exc_info"] = True
        super().error(msg, *args, **kwargs)

    def exception(self, msg, *args, exc_info=True, **kwargs) -> None:
        """Same as error; exc_info is derived from the exception being handled"""
        self.error(msg, *args, **kwargs)
