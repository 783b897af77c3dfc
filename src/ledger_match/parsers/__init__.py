"""Parsers for ledger export files."""

from .ledger_parser import LedgerParser

__all__ = ["LedgerParser"]
