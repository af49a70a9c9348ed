"""Fuel report workbook -> operating session importer."""

__version__ = "0.1.0"
