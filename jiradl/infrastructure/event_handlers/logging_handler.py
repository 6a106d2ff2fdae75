"""
Logging Event Handler

Infrastructure event handler for logging domain events.
Domain layer remains unaware of logging infrastructure.
"""

import logging

from jiradl.domain.events import (
    DomainEvent,
    JobCancelledEvent,
    JobCompletedEvent,
    JobFailedEvent,
    JobProgressUpdatedEvent,
    JobPurgedEvent,
    JobStartedEvent,
    JobSubmittedEvent,
    SegmentBuiltEvent,
)


class LoggingEventHandler:
    """
    Infrastructure event handler for logging domain events.

    Progress updates are logged at DEBUG since they arrive per attachment
    part; lifecycle transitions are logged at INFO or above.
    """

    def __init__(self, logger: logging.Logger):
        """
        Initialize with logger instance.

        Args:
            logger: Python logging.Logger instance
        """
        self.logger = logger

    def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event by logging it.

        Args:
            event: Domain event to log
        """
        try:
            if isinstance(event, JobSubmittedEvent):
                self._handle_job_submitted(event)
            elif isinstance(event, JobStartedEvent):
                self._handle_job_started(event)
            elif isinstance(event, JobProgressUpdatedEvent):
                self._handle_job_progress(event)
            elif isinstance(event, SegmentBuiltEvent):
                self._handle_segment_built(event)
            elif isinstance(event, JobCompletedEvent):
                self._handle_job_completed(event)
            elif isinstance(event, JobFailedEvent):
                self._handle_job_failed(event)
            elif isinstance(event, JobCancelledEvent):
                self.logger.info(f"Job cancelled: job_id={event.aggregate_id}")
            elif isinstance(event, JobPurgedEvent):
                self.logger.info(
                    f"Job purged: job_id={event.aggregate_id}, status={event.status}"
                )
            else:
                self.logger.debug(
                    f"Unhandled event: {event.__class__.__name__} "
                    f"(aggregate_id={event.aggregate_id})"
                )
        except Exception as e:
            # Log handler errors but don't fail the operation
            self.logger.error(
                f"Error in logging event handler for {event.__class__.__name__}: {e}",
                exc_info=True,
            )

    def _handle_job_submitted(self, event: JobSubmittedEvent) -> None:
        self.logger.info(
            f"Job submitted: job_id={event.aggregate_id}, "
            f"project={event.project_key}, type={event.download_type}"
        )

    def _handle_job_started(self, event: JobStartedEvent) -> None:
        self.logger.info(
            f"Job started: job_id={event.aggregate_id}, "
            f"project={event.project_key}, type={event.download_type}"
        )

    def _handle_job_progress(self, event: JobProgressUpdatedEvent) -> None:
        progress = event.progress
        self.logger.debug(
            f"Job progress: job_id={event.aggregate_id}, "
            f"{progress.percentage}% [{progress.stage}] {progress.message}"
        )

    def _handle_segment_built(self, event: SegmentBuiltEvent) -> None:
        """Log an archive segment written to disk."""
        self.logger.info(
            f"Segment built: job_id={event.aggregate_id}, "
            f"{event.segment_number}/{event.total_segments} {event.filename} "
            f"({event.file_count} files, {event.size_bytes} bytes)"
        )

    def _handle_job_completed(self, event: JobCompletedEvent) -> None:
        self.logger.info(
            f"Job completed: job_id={event.aggregate_id}, "
            f"segments={event.segment_count}, ticket_file={event.ticket_file}"
        )

    def _handle_job_failed(self, event: JobFailedEvent) -> None:
        """Log job failure."""
        self.logger.error(
            f"Job failed: job_id={event.aggregate_id}, "
            f"category={event.error_category}, error={event.error_message}"
        )
