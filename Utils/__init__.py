"""Normalisation and deduplication helpers."""
