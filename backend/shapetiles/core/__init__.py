"""Core configuration and logging for shapetiles."""
