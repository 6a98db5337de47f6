"""Documents module — employee document requests handled by HR."""
