"""Jira project exporter: ticket exports and size-bounded attachment archives."""

__version__ = "1.0.0"
