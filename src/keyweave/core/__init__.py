"""Core package of keyweave: data models, errors and settings."""
