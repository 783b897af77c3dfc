"""LLM-assisted reconciliation of two heterogeneous transaction ledgers."""

__version__ = "0.1.0"
