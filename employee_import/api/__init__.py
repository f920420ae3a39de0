"""HTTP API layer: application factory, routes, metrics."""
