"""Seller dashboard backend: Amazon SP-API connection and data sync."""

__version__ = "0.1.0"
