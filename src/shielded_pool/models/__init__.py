"""Pydantic models for requests, events and responses."""
