"""Shared error types and retry helpers."""
