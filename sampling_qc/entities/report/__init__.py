"""Read-only LAR, DPPM and IQA aggregations."""
