"""JSON schemas for authored corpus declarations."""
