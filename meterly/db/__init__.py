"""Database engine and session construction."""
