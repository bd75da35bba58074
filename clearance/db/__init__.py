"""Database layer for the clearance service."""
