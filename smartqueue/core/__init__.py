"""Core configuration, database wiring, and shared helpers."""
