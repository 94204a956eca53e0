"""Exceptions raised outside the pure series engine."""

from __future__ import annotations


class MarketDataError(Exception):
    """Base class for dataset problems."""


class DatasetLoadError(MarketDataError):
    """The dataset could not be read or does not have the expected shape."""
