"""Keeps a fixed pool of AWS elastic IPs bound to healthy cluster instances."""

__version__ = "0.1.0"
