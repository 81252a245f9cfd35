"""Business logic layer for versions app.

Snapshots, restores and comparisons of stored object content.
"""
