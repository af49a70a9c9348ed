"""Workbook reading and row shaping."""
