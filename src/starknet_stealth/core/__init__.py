"""Curve arithmetic, key handling, stealth derivation and address computation."""
