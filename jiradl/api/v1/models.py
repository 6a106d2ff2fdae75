"""
API Models for request/response validation and Swagger documentation
"""

from flask_restx import fields

from jiradl.api.v1 import api

# =============================================================================
# Request Models
# =============================================================================

credentials_request = api.model(
    "CredentialsRequest",
    {
        "username": fields.String(
            required=True, description="Jira account email", example="jane@example.com"
        ),
        "api_token": fields.String(required=True, description="Jira API token"),
    },
)

export_request = api.inherit(
    "ExportRequest",
    credentials_request,
    {
        "project_key": fields.String(
            required=True, description="Jira project key", example="PROJ"
        ),
        "download_type": fields.String(
            description="What to export",
            enum=["all", "tickets", "attachments"],
            default="all",
        ),
        "file_format": fields.String(
            description="Ticket export format", enum=["json", "csv"], default="json"
        ),
        "output_directory": fields.String(
            description="Directory on the server to write files into", required=False
        ),
    },
)

path_request = api.model(
    "PathRequest",
    {"path": fields.String(required=True, description="Directory to validate")},
)

# =============================================================================
# Response Models
# =============================================================================

progress_detail = api.model(
    "ProgressDetail",
    {
        "percentage": fields.Integer(description="Progress percentage (0-100)", min=0, max=100),
        "stage": fields.String(
            description="Pipeline stage",
            enum=["init", "fetching", "processing", "analyzing", "segmenting", "downloading", "complete"],
        ),
        "message": fields.String(description="Human readable status"),
        "total_issues": fields.Integer(),
        "current_issue": fields.Integer(),
        "downloaded_size": fields.Integer(description="Bytes written so far"),
        "time_elapsed": fields.Float(description="Seconds since the job started"),
        "estimated_time_remaining": fields.Float(allow_null=True),
        "current_operation": fields.String(allow_null=True),
        "operation_details": fields.String(allow_null=True),
    },
)

segment_model = api.model(
    "Segment",
    {
        "segment_number": fields.Integer(description="1-based segment index"),
        "total_segments": fields.Integer(),
        "status": fields.String(enum=["completed", "retrieved"]),
        "filename": fields.String(),
        "file_count": fields.Integer(description="Entries in the archive"),
        "size_bytes": fields.Integer(),
        "created_at": fields.String(),
    },
)

job_response = api.model(
    "JobResponse",
    {
        "job_id": fields.String(description="Unique job identifier"),
        "status": fields.String(
            description="Job status",
            enum=["pending", "processing", "completed", "failed", "cancelled"],
        ),
        "message": fields.String(description="Status message"),
    },
)

job_status_response = api.model(
    "JobStatusResponse",
    {
        "job_id": fields.String(description="Job identifier"),
        "project_key": fields.String(),
        "download_type": fields.String(),
        "file_format": fields.String(),
        "output_directory": fields.String(),
        "status": fields.String(
            description="Job status",
            enum=["pending", "processing", "completed", "failed", "cancelled"],
        ),
        "progress": fields.Nested(progress_detail, description="Progress details"),
        "created_at": fields.String(),
        "updated_at": fields.String(),
        "completed_at": fields.String(allow_null=True),
        "error": fields.String(description="Error message if failed", allow_null=True),
        "error_category": fields.String(description="Error category if failed", allow_null=True),
        "ticket_file": fields.String(allow_null=True),
        "segments": fields.List(fields.Nested(segment_model)),
    },
)

error_response = api.model(
    "ErrorResponse",
    {
        "error": fields.String(description="Error category"),
        "title": fields.String(),
        "message": fields.String(description="User facing message"),
        "action": fields.String(description="Suggested next step"),
        "detail": fields.String(description="Technical detail", allow_null=True),
    },
)

health_response = api.model(
    "HealthResponse",
    {
        "status": fields.String(description="Overall health status", enum=["ok", "degraded"]),
        "message": fields.String(description="Health message"),
        "redis": fields.String(description="Redis connection status"),
        "celery": fields.String(description="Job queue status"),
        "socketio": fields.String(description="SocketIO availability status"),
    },
)
