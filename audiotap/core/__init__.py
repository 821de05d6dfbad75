"""Core capture components."""
