"""HTTP API for the generation pipeline."""
