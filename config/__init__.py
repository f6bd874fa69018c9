"""Project configuration (pydantic-settings)."""
