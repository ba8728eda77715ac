"""Geographic projection, boundary paths and zoom/pan transforms."""
