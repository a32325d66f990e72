"""Logging and metrics for transync."""
