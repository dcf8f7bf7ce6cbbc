"""Concrete collaborators: SQLite store, JWT tokens, language-model gateway."""
