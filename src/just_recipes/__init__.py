"""Discover, configure and run `just` recipes from the terminal."""

__version__ = "0.1.0"
