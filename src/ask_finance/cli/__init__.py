"""CLI module for ask-finance."""

from .main import main

__all__ = ["main"]
