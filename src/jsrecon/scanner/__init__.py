"""Scanning and extraction engine."""
