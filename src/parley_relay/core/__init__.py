"""Core configuration, errors and shared plumbing."""
