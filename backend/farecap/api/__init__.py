"""HTTP API for the PearlCard fare engine."""
