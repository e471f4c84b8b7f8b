"""
Backend package for the Singapore nature parks site.

This package provides a FastAPI application that persists contact-form
messages and park reviews, backed either by process memory or by a
relational database reached through SQLAlchemy.
"""
