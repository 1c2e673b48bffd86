"""Application layer - services, use cases and background workers."""
