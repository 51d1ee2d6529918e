"""Content versioning and audit engine for a portfolio CMS."""

__version__ = "0.1.0"
