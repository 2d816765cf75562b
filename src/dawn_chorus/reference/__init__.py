"""Static reference values (thresholds, radii, cache lifetimes)."""
