"""Adapters for Redis, the local filesystem and the Jira REST API."""
