"""Configuration, retry and version helpers."""
