"""Part master keyed by part number."""
