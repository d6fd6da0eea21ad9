"""Student reading and quiz tracking storage."""

__version__ = "0.2.0"
