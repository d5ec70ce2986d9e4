"""Core models and shared utilities for ciscout."""
