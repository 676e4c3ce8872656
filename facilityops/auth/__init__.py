"""Identity context for the actor of each lifecycle operation."""
