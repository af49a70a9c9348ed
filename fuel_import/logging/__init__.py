"""Logging setup and error log buffering for the importer."""
