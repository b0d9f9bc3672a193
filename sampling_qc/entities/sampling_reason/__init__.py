"""Reasons an inspector can give for pulling a sample."""
