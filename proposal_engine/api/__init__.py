"""HTTP API for the proposal engine."""
