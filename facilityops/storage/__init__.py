"""Storage for uploaded completion photos."""
