"""Core utilities shared across PulseCode modules."""
