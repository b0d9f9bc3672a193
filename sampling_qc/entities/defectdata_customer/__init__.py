"""Defects reported against customer returns, one row per defect found."""
