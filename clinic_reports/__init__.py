"""Clinic report engine: CSV and PDF exports for the clinic dashboard."""

__version__ = "0.1.0"
