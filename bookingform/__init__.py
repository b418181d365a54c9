"""Salon booking form normalizer, compiler and service."""

__version__ = "0.1.0"
