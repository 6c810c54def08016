"""Core configuration, error types and odds arithmetic."""
