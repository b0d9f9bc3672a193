"""Inspection results recorded at the OQA, SIV and FVI stations."""
