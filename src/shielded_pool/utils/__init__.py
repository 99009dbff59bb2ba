"""Shared helpers: field arithmetic, hashing and encoding."""
