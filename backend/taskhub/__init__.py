"""Task service with asynchronous bulk ingestion."""

__version__ = "0.1.0"
