"""Shared helpers for crudgen."""
