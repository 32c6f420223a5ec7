"""Core retrieval pipeline."""
