"""Exception types raised by the counting core."""

from __future__ import annotations


class StockCountError(Exception):
    """Base class for errors raised by this package."""


class BackendError(StockCountError):
    """The persistence service rejected or failed a call."""


class InvalidTotalError(StockCountError, ValueError):
    """A manually entered total could not be read as an integer."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Total is not an integer: {text!r}")
        self.text = text
