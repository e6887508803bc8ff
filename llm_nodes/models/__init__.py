"""Data models for usage, configuration and batches."""
