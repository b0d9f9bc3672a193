"""Customer lookup keyed by a short code."""
