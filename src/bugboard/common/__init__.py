"""Errors and configuration shared by all bugboard stages."""
