"""Outbound HTTP: SSRF-safe client and per-host rate limiting."""
