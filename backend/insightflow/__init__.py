"""InsightFlow business-intelligence backend."""
