"""Infrastructure layer for variants app: image rendering."""
