"""Core configuration, errors, identity, logging and rate limiting."""
