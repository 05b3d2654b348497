"""Data utilities (CSV import)."""
