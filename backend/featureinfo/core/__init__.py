"""Core configuration, logging setup and error types."""
