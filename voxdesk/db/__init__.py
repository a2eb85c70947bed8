"""Persistence layer (SQLModel + aiosqlite)."""
