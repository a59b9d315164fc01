"""Response records, classification, and result reporting."""
