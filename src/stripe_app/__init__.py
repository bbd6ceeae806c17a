"""Stripe payment app: configuration store, webhook lifecycle and transaction mapping."""

__version__ = "0.1.0"
