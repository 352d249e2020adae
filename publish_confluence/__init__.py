"""Publish template markdown to Confluence and export pages back to it."""

__version__ = "0.1.0"
