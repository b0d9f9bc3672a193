"""Images attached to customer defect records."""
