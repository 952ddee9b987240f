"""Event door-prize drawing engine."""
