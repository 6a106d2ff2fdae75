"""
Application Factory

Creates and configures the Flask application with all dependencies.
The factory takes optional overrides so tests can inject in-memory
repositories instead of Redis.
"""

import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from jiradl.application.dependency_container import DependencyContainer
from jiradl.application.event_publisher import EventPublisher
from jiradl.application.export_service import ExportService
from jiradl.application.job_dispatcher import JobDispatcher, ThreadPoolJobDispatcher
from jiradl.application.job_service import JobService
from jiradl.config.celery_config import make_celery
from jiradl.config.export_config import ExportConfig
from jiradl.config.logging_config import configure_logging
from jiradl.config.redis_config import RedisConfig
from jiradl.config.socketio_config import get_socketio, init_socketio
from jiradl.domain.export.segment_planner import SegmentPlanner
from jiradl.domain.file_storage import FileManager
from jiradl.domain.file_storage.storage_repository import IFileStorageRepository
from jiradl.domain.job_management import JobManager
from jiradl.domain.job_management.repositories import CredentialVault, JobRepository
from jiradl.infrastructure.event_handlers import LoggingEventHandler, WebSocketEventHandler
from jiradl.infrastructure.jira_client import JiraClientFactory
from jiradl.infrastructure.local_file_storage_repository import LocalFileStorageRepository
from jiradl.infrastructure.redis_credential_vault import RedisCredentialVault
from jiradl.infrastructure.redis_job_repository import RedisJobRepository

logger = logging.getLogger(__name__)


class AppConfig:
    """Application configuration."""

    def __init__(self):
        self.api_version = os.getenv("API_VERSION", "v1")
        self.flask_env = os.getenv("FLASK_ENV", "development")
        self.is_production = self.flask_env == "production"
        self.cors_origins = os.getenv("CORS_ORIGINS", "*")
        self.socketio_enabled = os.getenv("SOCKETIO_ENABLED", "true").lower() == "true"
        self.export = ExportConfig()
        self.redis = RedisConfig()


def create_app(
    config: Optional[AppConfig] = None,
    job_repository: Optional[JobRepository] = None,
    credential_vault: Optional[CredentialVault] = None,
    client_factory=None,
    dispatcher: Optional[JobDispatcher] = None,
) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Application configuration, uses default if None
        job_repository: Job store, Redis-backed if None
        credential_vault: Credential store, Redis-backed if None
        client_factory: Callable building a tracker client from credentials
        dispatcher: Job queue, chosen from JOB_QUEUE_BACKEND if None

    Returns:
        Configured Flask application
    """
    if config is None:
        config = AppConfig()

    configure_logging()

    app = Flask(__name__)

    CORS(
        app,
        resources={
            r"/*": {
                "origins": config.cors_origins,
                "methods": ["GET", "POST", "DELETE", "OPTIONS"],
                "allow_headers": ["Content-Type", "Authorization"],
                "expose_headers": ["Content-Type", "Content-Disposition"],
                "max_age": 3600,
            }
        },
    )

    _initialize_infrastructure(app, config)
    _initialize_services(
        app, config, job_repository, credential_vault, client_factory, dispatcher
    )
    _register_blueprints(app, config)

    return app


def _initialize_infrastructure(app: Flask, config: AppConfig) -> None:
    """
    Initialize Redis, Celery and SocketIO.

    Failures degrade the app instead of aborting startup; /health
    reports what is missing.
    """
    from jiradl.api.websocket_events import register_socketio_events

    app.celery = None
    app.socketio = None
    app.redis_manager = None

    try:
        app.redis_manager = config.redis.connect()
        logger.info("Redis initialized")
    except Exception as e:
        logger.warning(f"Could not initialize Redis: {e}")

    if config.export.job_queue_backend == "celery":
        try:
            app.celery = make_celery(app)
            logger.info("Celery initialized")
        except Exception as e:
            logger.warning(f"Could not initialize Celery: {e}")

    if config.socketio_enabled:
        try:
            app.socketio = init_socketio(app)
            register_socketio_events(app)
        except Exception as e:
            logger.warning(f"Could not initialize SocketIO, WebSocket support disabled: {e}")
    else:
        logger.info("SocketIO disabled - clients poll job status")


def _initialize_services(
    app: Flask,
    config: AppConfig,
    job_repository: Optional[JobRepository],
    credential_vault: Optional[CredentialVault],
    client_factory,
    dispatcher: Optional[JobDispatcher],
) -> None:
    """
    Wire repositories, domain services and application services into a
    DependencyContainer attached to the app. API routes and tasks only
    resolve services from app.container.
    """
    export_config = config.export
    container = DependencyContainer()
    container.register_singleton(ExportConfig, export_config)

    if job_repository is None or credential_vault is None:
        if app.redis_manager is None:
            raise RuntimeError("Redis is required for the job store but could not be initialized")
        redis_repo = config.redis.repository(app.redis_manager)
        job_repository = job_repository or RedisJobRepository(redis_repo)
        credential_vault = credential_vault or RedisCredentialVault(
            redis_repo, ttl=config.redis.credential_ttl
        )

    storage_repository = LocalFileStorageRepository(export_config.download_path)
    client_factory = client_factory or JiraClientFactory(
        export_config.jira_base_url,
        timeout=export_config.api_timeout_seconds,
        max_retries=export_config.api_max_retries,
    )

    container.register_singleton(JobRepository, job_repository)
    container.register_singleton(CredentialVault, credential_vault)
    container.register_singleton(IFileStorageRepository, storage_repository)

    event_publisher = EventPublisher()
    container.setup_event_handlers(
        event_publisher,
        [
            LoggingEventHandler(logging.getLogger("jiradl.events")),
            WebSocketEventHandler(get_socketio),
        ],
    )
    container.register_singleton(EventPublisher, event_publisher)

    job_manager = JobManager(job_repository)
    file_manager = FileManager(storage_repository)
    container.register_singleton(JobManager, job_manager)
    container.register_singleton(FileManager, file_manager)

    export_service = ExportService(
        job_manager,
        credential_vault,
        client_factory,
        storage_repository,
        event_publisher,
        config=export_config,
        planner=SegmentPlanner(),
    )
    container.register_singleton(ExportService, export_service)

    if dispatcher is None:
        dispatcher = _make_dispatcher(app, export_config, export_service)
    container.register_singleton(JobDispatcher, dispatcher)

    job_service = JobService(
        job_manager,
        file_manager,
        credential_vault,
        storage_repository,
        dispatcher,
        event_publisher,
        client_factory,
        config=export_config,
    )
    container.register_singleton(JobService, job_service)

    # Celery beat runs the sweep for Celery workers; local workers need their own
    if isinstance(dispatcher, ThreadPoolJobDispatcher):
        dispatcher.schedule(
            job_service.cleanup_expired_jobs,
            export_config.cleanup_interval_seconds,
            "retention-sweep",
        )

    app.container = container
    app.dispatcher = dispatcher
    logger.info("Application services initialized with DependencyContainer")


def _make_dispatcher(app: Flask, export_config: ExportConfig, export_service: ExportService):
    if app.celery is not None:
        from jiradl.infrastructure.celery_dispatcher import CeleryJobDispatcher

        return CeleryJobDispatcher(app.celery)

    if export_config.job_queue_backend == "celery":
        logger.warning("Celery unavailable, running jobs in local worker threads")

    return ThreadPoolJobDispatcher(
        export_service.execute_export,
        max_workers=export_config.max_concurrent_jobs,
        inter_job_delay=export_config.inter_job_delay_seconds,
    )


def _register_blueprints(app: Flask, config: AppConfig) -> None:
    from jiradl.api.v1 import api_v1_bp

    app.register_blueprint(api_v1_bp)
    logger.info(
        f"API {config.api_version} registered at /api/{config.api_version} "
        f"with Swagger UI at /api/{config.api_version}/docs"
    )
