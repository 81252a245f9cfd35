"""Business logic layer for variants app."""
