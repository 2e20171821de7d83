"""Database-backed repository implementations."""
