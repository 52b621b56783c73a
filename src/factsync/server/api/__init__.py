"""REST API routes of the log service."""
