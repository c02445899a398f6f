"""Structured log ingestion and query service."""
