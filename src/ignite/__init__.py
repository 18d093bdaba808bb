"""Ignite - Concept lifecycle tracking for clustered notes."""

__version__ = "0.1.0"
