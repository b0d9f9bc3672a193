"""Defect catalogue."""
