"""
Export Service

Application service that runs one export job from claim to completion.
This is the job boundary: every failure inside the pipeline is caught,
categorised, persisted on the job and published, never raised.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from jiradl.application.archive_builder import ArchiveBuilder, RetryPolicy
from jiradl.application.cancellation import CancellationToken
from jiradl.application.event_publisher import EventPublisher
from jiradl.application.export_pipeline import ExportPipeline
from jiradl.application.export_result import ExportResult
from jiradl.application.observability import JobLogger
from jiradl.application.progress import JobProgressRecorder, ProgressSink, ProgressTracker
from jiradl.config.export_config import ExportConfig
from jiradl.domain.errors import DomainError, ErrorCategory, ValidationError, user_message_for
from jiradl.domain.events import SegmentBuiltEvent
from jiradl.domain.export.repositories import IssueTrackerClient
from jiradl.domain.export.segment_planner import SegmentPlanner
from jiradl.domain.export.ticket_exporter import TicketExporter
from jiradl.domain.file_storage.entities import ArchiveFile
from jiradl.domain.file_storage.storage_repository import IFileStorageRepository
from jiradl.domain.job_management.entities import Segment
from jiradl.domain.job_management.repositories import CredentialVault
from jiradl.domain.job_management.services import JobManager, JobNotFoundError
from jiradl.domain.job_management.value_objects import Credentials

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Credentials], IssueTrackerClient]


def categorize_error(exception: Exception) -> ErrorCategory:
    """Map an exception raised inside the pipeline to an error category."""
    if isinstance(exception, DomainError):
        return exception.category
    if isinstance(exception, OSError):
        return ErrorCategory.STORAGE_ERROR
    return ErrorCategory.SYSTEM_ERROR


class ExportService:
    """
    Application service for executing export jobs.

    Coordinates JobManager, the credential vault, the tracker client and
    the export pipeline. Publishes domain events at each state transition
    for decoupled side effects (WebSocket, logging).
    """

    def __init__(
        self,
        job_manager: JobManager,
        credential_vault: CredentialVault,
        client_factory: ClientFactory,
        storage_repository: IFileStorageRepository,
        event_publisher: EventPublisher,
        config: Optional[ExportConfig] = None,
        planner: Optional[SegmentPlanner] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.job_manager = job_manager
        self.credential_vault = credential_vault
        self.client_factory = client_factory
        self.storage_repository = storage_repository
        self.event_publisher = event_publisher
        self.config = config or ExportConfig()
        self.planner = planner or SegmentPlanner()
        self._sleep = sleep

    def _retry_policy(self) -> RetryPolicy:
        kwargs = {
            "max_retries": self.config.api_max_retries,
            "base_timeout": self.config.api_timeout_seconds,
            "max_timeout": self.config.api_max_timeout_seconds,
            "retry_delay": self.config.api_retry_delay_seconds,
        }
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return RetryPolicy(**kwargs)

    def execute_export(
        self,
        job_id: str,
        reporter: Optional[List[ProgressSink]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExportResult:
        """
        Execute the complete export workflow for a pending job.

        Workflow:
        1. Claim the job (pending -> processing) and publish JobStartedEvent
        2. Run the export pipeline with job-scoped logging and progress
        3. Persist segments in bulk and complete the job
        4. On error: categorize, fail the job, publish JobFailedEvent

        Args:
            job_id: Job identifier
            reporter: Extra progress sinks, e.g. an interactive stream
            cancel_token: Cooperative cancellation flag

        Returns:
            ExportResult describing how the job ended
        """
        try:
            claimed = self.job_manager.claim_job(job_id)
        except JobNotFoundError as e:
            logger.warning(f"Job {job_id} vanished before it could run: {e}")
            return ExportResult.create_failure(
                None, ErrorCategory.JOB_NOT_FOUND, user_message_for(ErrorCategory.JOB_NOT_FOUND)
            )

        if claimed is None:
            logger.info(f"Job {job_id} is no longer pending, skipping")
            return ExportResult.create_skipped(None)

        job, started_event = claimed
        self.event_publisher.publish(started_event)

        log = JobLogger.for_job(job_id, job.project_key)
        log.info(
            f"Starting {job.download_type.value} export of {job.project_key} "
            f"into {job.output_directory}"
        )

        pipeline: Optional[ExportPipeline] = None
        archives: List[ArchiveFile] = []
        try:
            credentials = self.credential_vault.get(job.credentials_ref)
            if credentials is None:
                raise ValidationError(
                    "Credentials for this job are no longer available",
                    ErrorCategory.MISSING_CREDENTIALS,
                )

            client = self.client_factory(credentials)
            sinks: List[ProgressSink] = [
                JobProgressRecorder(self.job_manager, self.event_publisher)
            ]
            sinks.extend(reporter or [])
            tracker = ProgressTracker(job_id, sinks)

            def on_archive(archive: ArchiveFile) -> None:
                archives.append(archive)
                self.event_publisher.publish(
                    SegmentBuiltEvent(
                        aggregate_id=job_id,
                        occurred_at=datetime.now(timezone.utc),
                        segment_number=archive.segment_number,
                        total_segments=archive.total_segments,
                        filename=archive.filename,
                        size_bytes=archive.size_bytes,
                        file_count=archive.file_count,
                    )
                )

            pipeline = ExportPipeline(
                client=client,
                planner=self.planner,
                archive_builder=ArchiveBuilder(
                    self.storage_repository, self._retry_policy(), log
                ),
                ticket_exporter=TicketExporter(self.storage_repository),
                storage=self.storage_repository,
                tracker=tracker,
                log=log,
                segment_limit=self.config.segment_size_limit_bytes,
                page_size=self.config.issue_page_size,
                cancel_token=cancel_token,
                on_archive=on_archive,
            )
            outcome = pipeline.run(job)

            segments = [
                Segment.create(
                    job_id=job_id,
                    segment_number=archive.segment_number,
                    total_segments=archive.total_segments,
                    file_path=archive.file_path,
                    file_count=archive.file_count,
                    size_bytes=archive.size_bytes,
                )
                for archive in outcome.archives
            ]
            job, completed_event = self.job_manager.complete_job(
                job_id, segments, outcome.ticket_file
            )
            self.event_publisher.publish(completed_event)

            log.info(outcome.summary())
            return ExportResult.create_success(job, outcome)

        except Exception as e:
            self._discard(archives, log)
            ticket_file = pipeline.ticket_file if pipeline is not None else None
            return self._handle_error(job_id, e, log, ticket_file)

    def _discard(self, archives: List[ArchiveFile], log) -> None:
        for archive in archives:
            try:
                self.storage_repository.delete(archive.file_path)
            except OSError as e:
                log.warning(f"Could not remove archive {archive.file_path}: {e}")

    def _handle_error(
        self, job_id: str, exception: Exception, log, ticket_file: Optional[str] = None
    ) -> ExportResult:
        """
        Categorize the error, fail the job and publish JobFailedEvent.

        Returns:
            ExportResult indicating failure
        """
        error_category = categorize_error(exception)
        user_message = user_message_for(error_category)
        technical_message = f"{type(exception).__name__}: {exception}"

        if error_category == ErrorCategory.SYSTEM_ERROR:
            log.error(
                f"Failed with {error_category.value}: {technical_message}", exc_info=True
            )
        else:
            log.error(f"Failed with {error_category.value}: {technical_message}")

        job = None
        try:
            job, failed_event = self.job_manager.fail_job(
                job_id, user_message, error_category.value, ticket_file=ticket_file
            )
            self.event_publisher.publish(failed_event)
        except Exception as e:
            log.error(f"Failed to update job status: {e}")

        return ExportResult.create_failure(job, error_category, user_message)
