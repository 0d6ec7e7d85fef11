"""Core snapshot engine components."""
