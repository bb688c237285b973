"""Presales assessment pipeline and timeline estimation engine."""

__version__ = "1.0.0"
