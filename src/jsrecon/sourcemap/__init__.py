"""Source map reconstruction."""
