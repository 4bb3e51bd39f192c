"""Limit order book, FIFO and pro-rata matching, FIX gateway, UDP engine messaging and clients."""

__version__ = "0.1.0"