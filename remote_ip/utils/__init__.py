"""Utility modules for forwarded-header processing."""
