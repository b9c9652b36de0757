"""Shared SQLite cache tier and the two-tier cache in front of it."""
