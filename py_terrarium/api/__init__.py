"""HTTP API for running games."""
