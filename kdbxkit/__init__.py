"""Ciphers, protected-field streams, block framing, binaries and inner headers for KDBX files."""

__version__ = "0.1.0"

__all__ = ["binary", "blocks", "ciphers", "inner_header", "salsa", "streams"]