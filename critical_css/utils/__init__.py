"""Utilities for critical CSS extraction."""
