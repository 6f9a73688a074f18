"""Asyncio building blocks for LLUDP clients: templates, decoding, SOCKS5 relay, circuits."""

__version__ = "0.3.0"