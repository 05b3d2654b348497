"""Domain services: aggregation, export and nutrition estimation."""
