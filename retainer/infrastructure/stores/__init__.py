"""Persistence interfaces and in-memory implementations."""
