"""Pydantic/SQLModel request and response payloads."""
