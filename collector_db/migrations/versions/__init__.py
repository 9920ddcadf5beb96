"""Versioned migration modules; each exposes a module-level ``MIGRATION``."""
