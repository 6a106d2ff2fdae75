"""
API Namespaces - Organized endpoint groups
"""

import json
import logging

from flask import Response, current_app, request
from flask_restx import Namespace, Resource

from jiradl.api.v1.models import (
    credentials_request,
    error_response,
    export_request,
    health_response,
    job_response,
    job_status_response,
    path_request,
)
from jiradl.application.export_service import ExportService
from jiradl.application.interactive_export import InteractiveExportSession
from jiradl.application.job_service import JobService, parse_credentials
from jiradl.config.export_config import ExportConfig
from jiradl.domain.errors import DomainError, ErrorCategory, create_error_response

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

STATUS_BY_CATEGORY = {
    ErrorCategory.JOB_NOT_FOUND: 404,
    ErrorCategory.FILE_NOT_FOUND: 404,
    ErrorCategory.PROJECT_NOT_FOUND: 404,
    ErrorCategory.JOB_STATE_CONFLICT: 409,
    ErrorCategory.AUTHENTICATION_FAILED: 401,
    ErrorCategory.REMOTE_TIMEOUT: 502,
    ErrorCategory.NETWORK_ERROR: 502,
    ErrorCategory.REMOTE_ERROR: 502,
    ErrorCategory.STORAGE_ERROR: 500,
    ErrorCategory.SYSTEM_ERROR: 500,
}


def _job_service() -> JobService:
    return current_app.container.resolve(JobService)


def _domain_error(e: DomainError):
    status_code = STATUS_BY_CATEGORY.get(e.category, 400)
    return create_error_response(e.category, str(e), status_code=status_code)


def _unexpected_error(e: Exception, action: str):
    current_app.logger.exception(f"Unexpected error while {action}: {e}")
    return create_error_response(
        ErrorCategory.SYSTEM_ERROR, f"Internal server error: {e}", status_code=500
    )


def _credentials_from(data):
    return parse_credentials(data.get("username"), data.get("api_token"))


def _stream_file(stream, filename, on_complete):
    """Stream a file in chunks; on_complete runs only after the last chunk."""

    def generate():
        try:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        finally:
            stream.close()
        try:
            on_complete()
        except Exception as e:
            logger.error(f"Post-retrieval cleanup failed for {filename}: {e}", exc_info=True)

    return Response(
        generate(),
        mimetype="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# =============================================================================
# Job Namespace - Background export jobs
# =============================================================================

job_ns = Namespace("jobs", description="Background export jobs")


@job_ns.route("/")
class JobList(Resource):
    """Submit and list export jobs"""

    @job_ns.doc("list_jobs")
    @job_ns.response(200, "Success", job_status_response)
    def get(self):
        """List all jobs, newest first"""
        try:
            return _job_service().list_jobs(), 200
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, "listing jobs")

    @job_ns.doc("submit_job")
    @job_ns.expect(export_request, validate=True)
    @job_ns.response(202, "Accepted", job_response)
    @job_ns.response(400, "Bad Request", error_response)
    def post(self):
        """
        Queue a background export job

        Validation errors are returned before any job is created.
        """
        data = request.get_json() or {}
        try:
            result = _job_service().submit_job(
                credentials=_credentials_from(data),
                project_key=data.get("project_key"),
                download_type=data.get("download_type", "all"),
                file_format=data.get("file_format", "json"),
                output_directory=data.get("output_directory"),
            )
            return result, 202
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, "submitting job")


@job_ns.route("/<string:job_id>")
@job_ns.param("job_id", "The job identifier")
class Job(Resource):
    """Job status operations"""

    @job_ns.doc("get_job")
    @job_ns.response(200, "Success", job_status_response)
    @job_ns.response(404, "Job Not Found", error_response)
    def get(self, job_id):
        """
        Get job status and progress

        Segments are listed once the job has completed.
        """
        try:
            return _job_service().get_job(job_id), 200
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, f"getting job {job_id}")

    @job_ns.doc("cancel_job")
    @job_ns.response(200, "Cancelled", job_response)
    @job_ns.response(404, "Job Not Found", error_response)
    @job_ns.response(409, "Job is not pending", error_response)
    def delete(self, job_id):
        """Cancel a pending job"""
        try:
            return _job_service().cancel_job(job_id), 200
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, f"cancelling job {job_id}")


@job_ns.route("/<string:job_id>/segments/<int:segment_number>")
@job_ns.param("job_id", "The job identifier")
@job_ns.param("segment_number", "1-based segment index")
class JobSegment(Resource):
    """Segment archive retrieval"""

    @job_ns.doc("retrieve_segment")
    @job_ns.response(200, "ZIP archive")
    @job_ns.response(404, "Not Found", error_response)
    def get(self, job_id, segment_number):
        """
        Download one segment archive

        The archive is deleted from the server after a complete transfer
        when DELETE_AFTER_RETRIEVE is enabled.
        """
        service = _job_service()
        try:
            segment, stream = service.retrieve_segment(job_id, segment_number)
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, f"retrieving segment {segment_number} of {job_id}")

        current_app.logger.info(f"Serving {segment.filename} for job {job_id}")
        return _stream_file(
            stream,
            segment.filename,
            lambda: service.finish_retrieval(job_id, segment_number),
        )


@job_ns.route("/<string:job_id>/archives/<string:filename>")
@job_ns.param("job_id", "The job identifier")
@job_ns.param("filename", "Archive file name as listed in the job's segments")
class JobArchive(Resource):
    """Segment archive retrieval by file name"""

    @job_ns.doc("retrieve_archive")
    @job_ns.response(200, "ZIP archive")
    @job_ns.response(400, "Not an archive name", error_response)
    @job_ns.response(404, "Not Found", error_response)
    def get(self, job_id, filename):
        """Download a segment archive by its file name"""
        service = _job_service()
        try:
            segment, stream = service.retrieve_archive(job_id, filename)
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, f"retrieving {filename} of {job_id}")

        return _stream_file(
            stream,
            segment.filename,
            lambda: service.finish_retrieval(job_id, segment.segment_number),
        )


@job_ns.route("/<string:job_id>/tickets")
@job_ns.param("job_id", "The job identifier")
class JobTickets(Resource):
    """Ticket export retrieval"""

    @job_ns.doc("retrieve_tickets")
    @job_ns.response(200, "Ticket export file")
    @job_ns.response(404, "Not Found", error_response)
    def get(self, job_id):
        """Download the ticket export file"""
        service = _job_service()
        try:
            path, stream = service.retrieve_ticket_file(job_id)
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, f"retrieving tickets of {job_id}")

        filename = path.replace("\\", "/").rsplit("/", 1)[-1]
        return _stream_file(stream, filename, lambda: service.finish_retrieval(job_id))


# =============================================================================
# Export Namespace - Interactive streaming export
# =============================================================================

export_ns = Namespace("exports", description="Interactive exports")


@export_ns.route("/stream")
class ExportStream(Resource):
    """Run an export inline and stream progress as server-sent events"""

    @export_ns.doc("stream_export")
    @export_ns.expect(export_request, validate=True)
    @export_ns.response(200, "text/event-stream of progress events")
    @export_ns.response(400, "Bad Request", error_response)
    def post(self):
        """
        Start an interactive export

        Each event is a JSON progress object. A keepAlive event is sent
        while a stage is busy; the last event carries success or failure.
        Disconnecting aborts the export.
        """
        data = request.get_json() or {}
        container = current_app.container
        try:
            job_id = _job_service().create_interactive_job(
                credentials=_credentials_from(data),
                project_key=data.get("project_key"),
                download_type=data.get("download_type", "all"),
                file_format=data.get("file_format", "json"),
                output_directory=data.get("output_directory"),
            )
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, "starting interactive export")

        session = InteractiveExportSession(
            container.resolve(ExportService),
            job_id,
            keepalive_interval=container.resolve(ExportConfig).keepalive_interval_seconds,
        )

        def generate():
            events = session.stream()
            try:
                for event in events:
                    yield f"data: {json.dumps(event)}\n\n"
            finally:
                events.close()

        return Response(
            generate(),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )


# =============================================================================
# Tracker Namespace - Credential checks and project listing
# =============================================================================

tracker_ns = Namespace("tracker", description="Issue tracker operations")


@tracker_ns.route("/connection")
class TrackerConnection(Resource):
    """Credential check"""

    @tracker_ns.doc("test_connection")
    @tracker_ns.expect(credentials_request, validate=True)
    @tracker_ns.response(401, "Authentication failed", error_response)
    def post(self):
        """Test credentials against Jira"""
        data = request.get_json() or {}
        try:
            return _job_service().test_connection(_credentials_from(data)), 200
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, "testing connection")


@tracker_ns.route("/projects")
class TrackerProjects(Resource):
    """Project listing"""

    @tracker_ns.doc("list_projects")
    @tracker_ns.expect(credentials_request, validate=True)
    def post(self):
        """List projects visible to the credentials"""
        data = request.get_json() or {}
        try:
            return {"projects": _job_service().list_projects(_credentials_from(data))}, 200
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, "listing projects")


# =============================================================================
# Path Namespace
# =============================================================================

path_ns = Namespace("paths", description="Download path operations")


@path_ns.route("/validate")
class PathValidation(Resource):
    """Download path validation"""

    @path_ns.doc("validate_path")
    @path_ns.expect(path_request, validate=True)
    @path_ns.response(400, "Invalid path", error_response)
    def post(self):
        """Create the directory if needed and check it is writable"""
        data = request.get_json() or {}
        try:
            return _job_service().validate_download_path(data.get("path")), 200
        except DomainError as e:
            return _domain_error(e)
        except Exception as e:
            return _unexpected_error(e, "validating path")


# =============================================================================
# Health Namespace
# =============================================================================

health_ns = Namespace("health", description="Service health")


def get_health_status(app) -> tuple:
    """
    Health of Redis, the job queue and SocketIO.

    Returns:
        Tuple of (health_status_dict, http_status_code)
    """
    from jiradl.config.socketio_config import is_socketio_enabled

    health_status = {
        "status": "ok",
        "message": "backend ready",
        "redis": "unknown",
        "celery": "unknown",
        "socketio": "unknown",
    }

    try:
        manager = getattr(app, "redis_manager", None)
        if manager is not None and manager.health_check():
            health_status["redis"] = "connected"
        else:
            health_status["redis"] = "disconnected"
            health_status["status"] = "degraded"
    except Exception as e:
        health_status["redis"] = f"error: {e}"
        health_status["status"] = "degraded"

    if getattr(app, "celery", None) is not None:
        health_status["celery"] = "available"
    elif getattr(app, "dispatcher", None) is not None:
        health_status["celery"] = "local"
    else:
        health_status["celery"] = "unavailable"
        health_status["status"] = "degraded"

    health_status["socketio"] = "available" if is_socketio_enabled() else "not_configured"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code


@health_ns.route("/")
class Health(Resource):
    @health_ns.doc("health")
    @health_ns.response(200, "Healthy", health_response)
    @health_ns.response(503, "Degraded", health_response)
    def get(self):
        """Overall health of the service and its dependencies"""
        return get_health_status(current_app)
