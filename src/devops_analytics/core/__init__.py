"""Core collection and flattening logic."""
