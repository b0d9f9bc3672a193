"""Customer and production site pairings keyed by a short code."""
