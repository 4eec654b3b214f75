"""External metadata services."""
