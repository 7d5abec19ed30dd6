"""Logging, metrics and tracing for the exception engine."""
