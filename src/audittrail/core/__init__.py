"""Core building blocks: database base, errors, logging and audit capture."""
