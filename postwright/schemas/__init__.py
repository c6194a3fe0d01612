"""JSON schemas bundled with Postwright."""
