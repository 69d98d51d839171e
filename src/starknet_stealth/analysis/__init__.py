"""Announcement parsing, sources, scanning and scan statistics."""
