"""Shared helpers for the Card Query backend."""
