"""Final visual inspection lines keyed by line code."""
