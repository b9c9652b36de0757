"""Cron-driven background refresh."""
