"""Photo gallery delivery service."""
