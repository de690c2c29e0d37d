"""Spoken-recall quiz engine: answer verification and quiz session lifecycle."""

__version__ = "0.1.0"
