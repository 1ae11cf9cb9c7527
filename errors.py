"""
errors.py
Exceptions and warnings raised while building the membership report.
"""

from __future__ import annotations


class UpstreamFetchError(RuntimeError):
    """The membership history could not be fetched. No report is produced."""


class MalformedRecordError(ValueError):
    """A history row carries a date that cannot be parsed."""


class DataIntegrityWarning(UserWarning):
    """The in-memory store filter removed rows the store query should have excluded."""
