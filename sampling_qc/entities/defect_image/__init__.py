"""Photos attached to defects."""
