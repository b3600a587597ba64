"""Core infrastructure: configuration, logging, time and HTTP client helpers."""
