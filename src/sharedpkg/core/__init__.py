"""Core installer components."""
