"""Deterministic identity key derivation and cipher primitives."""

__version__ = "0.1.0"
