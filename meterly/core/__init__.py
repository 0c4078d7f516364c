"""Core services and shared building blocks."""
