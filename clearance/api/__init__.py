"""HTTP API for the clearance service."""
