"""Infrastructure: Redis cache store and analytical-store persistence."""
