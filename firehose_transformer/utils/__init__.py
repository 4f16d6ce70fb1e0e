"""Shared utilities: structured logging and the transform error hierarchy."""
