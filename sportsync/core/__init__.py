"""Core infrastructure: settings, logging, metrics and database sessions."""
