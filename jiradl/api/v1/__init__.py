"""
API v1 - Jira export REST API

This module contains the versioned API endpoints with OpenAPI/Swagger documentation.
"""

import os

from flask import Blueprint
from flask_restx import Api

API_VERSION = os.getenv("API_VERSION", "v1")

api_v1_bp = Blueprint("api_v1", __name__, url_prefix=f"/api/{API_VERSION}")

api = Api(
    api_v1_bp,
    version="1.0",
    title="Jira Export API",
    description="Export Jira tickets and attachments as size-bounded ZIP segments",
    doc="/docs",
)

# Import namespaces after api is created to avoid circular imports
from .namespaces import export_ns, health_ns, job_ns, path_ns, tracker_ns  # noqa: E402

api.add_namespace(job_ns, path="/jobs")
api.add_namespace(export_ns, path="/exports")
api.add_namespace(tracker_ns, path="/tracker")
api.add_namespace(path_ns, path="/paths")
api.add_namespace(health_ns, path="/health")
