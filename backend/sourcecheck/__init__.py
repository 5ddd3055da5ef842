"""Validates diagram components against their source documents."""

__version__ = "1.0.0"
