"""Task board service: REST API, storage adapters, and board controller."""
