"""Payee name normalization, fuzzy matching and deduplication."""

__version__ = "0.1.0"
