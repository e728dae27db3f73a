"""Utility modules for the MySQL provider."""
