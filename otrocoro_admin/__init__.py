"""Otrocoro Admin: bundle pricing and administration backend."""

__version__ = "1.0.0"
