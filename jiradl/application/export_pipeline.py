"""
Export Pipeline

The single stage sequence shared by background jobs and interactive
exports: init -> fetching -> processing -> analyzing -> segmenting ->
downloading -> complete. Runs sequentially for one job; concurrency only
exists across jobs.
"""

import os
from typing import Any, Callable, Dict, List, Optional

from jiradl.application.archive_builder import ArchiveBuilder
from jiradl.application.cancellation import CancellationToken
from jiradl.application.export_result import ExportOutcome
from jiradl.application.observability import trace_stage
from jiradl.application.progress import ProgressTracker
from jiradl.domain.errors import NothingToDownloadError
from jiradl.domain.export.repositories import IssueTrackerClient
from jiradl.domain.export.segment_planner import SegmentPlanner, collect_attachments
from jiradl.domain.export.ticket_exporter import TicketExporter
from jiradl.domain.export.value_objects import SegmentPlan, TicketRecord
from jiradl.domain.file_storage.entities import ArchiveFile
from jiradl.domain.file_storage.storage_repository import IFileStorageRepository
from jiradl.domain.job_management.entities import ExportJob

ATTACHMENT_FIELDS = ["attachment"]
TICKET_FIELDS = [
    "summary",
    "description",
    "comment",
    "created",
    "updated",
    "status",
    "priority",
    "assignee",
    "reporter",
]

MEGABYTE = 1024 * 1024


def fields_for(job: ExportJob) -> List[str]:
    fields = []
    if job.download_type.includes_attachments:
        fields.extend(ATTACHMENT_FIELDS)
    if job.download_type.includes_tickets:
        fields.extend(TICKET_FIELDS)
    return fields


def project_jql(project_key: str) -> str:
    return f'project = "{project_key}" ORDER BY created ASC'


class ExportPipeline:
    """
    Runs one export for one job.

    Archives produced by a failed run are deleted before the error
    propagates. A ticket file already written stays on disk and is
    exposed through ``ticket_file`` so the caller can record it.
    """

    def __init__(
        self,
        client: IssueTrackerClient,
        planner: SegmentPlanner,
        archive_builder: ArchiveBuilder,
        ticket_exporter: TicketExporter,
        storage: IFileStorageRepository,
        tracker: ProgressTracker,
        log,
        segment_limit: int,
        page_size: int = 100,
        cancel_token: Optional[CancellationToken] = None,
        on_archive: Optional[Callable[[ArchiveFile], None]] = None,
    ):
        self.client = client
        self.planner = planner
        self.archive_builder = archive_builder
        self.ticket_exporter = ticket_exporter
        self.storage = storage
        self.tracker = tracker
        self.log = log
        self.segment_limit = segment_limit
        self.page_size = page_size
        self.cancel_token = cancel_token or CancellationToken()
        self.on_archive = on_archive
        self.ticket_file: Optional[str] = None
        self._archives: List[ArchiveFile] = []

    def run(self, job: ExportJob) -> ExportOutcome:
        """
        Execute every stage for the job.

        Returns:
            ExportOutcome with the ticket file and archives produced

        Raises:
            DomainError subclasses for remote, segmentation, storage and
            cancellation failures; any other exception propagates as is
        """
        outcome = ExportOutcome(project_key=job.project_key)
        try:
            total = self._init(job)
            issues = self._fetch(job, total)
            outcome.issue_count = len(issues)
            self._process(job, issues, outcome)

            if job.download_type.includes_attachments:
                descriptors = self._analyze(issues, outcome)
                plans = self._segment(job, descriptors)
                outcome.archives = self._download(job, plans, outcome)

            self.tracker.emit("complete", outcome.summary(), 100)
            return outcome
        except BaseException:
            self._discard_archives()
            raise

    def _checkpoint(self) -> None:
        self.cancel_token.raise_if_cancelled()

    def _remote(self, label: str, func: Callable[[], Any]) -> Any:
        """Run a metadata request under the same transient-error retries as downloads."""
        return self.archive_builder.retry_policy.call(
            lambda timeout: func(), 0, label, self.log
        )

    @trace_stage("init")
    def _init(self, job: ExportJob) -> int:
        self._checkpoint()
        self.tracker.emit("init", f"Connecting to project {job.project_key}", 1)
        project = self._remote(
            f"project lookup for {job.project_key}",
            lambda: self.client.get_project(job.project_key),
        )
        counted = self._remote(
            "issue count",
            lambda: self.client.search_issues(
                project_jql(job.project_key), start_at=0, max_results=0, fields=[]
            ),
        )
        total = int(counted.get("total") or 0)
        self.log.info(
            f"Project {project.get('key', job.project_key)} "
            f"({project.get('name', '')}) has {total} issues"
        )
        self.tracker.emit(
            "init",
            f"Found {total} issues in {project.get('name') or job.project_key}",
            3,
            total_issues=total,
        )
        return total

    @trace_stage("fetching")
    def _fetch(self, job: ExportJob, total: int) -> List[Dict[str, Any]]:
        fields = fields_for(job)
        jql = project_jql(job.project_key)
        issues: List[Dict[str, Any]] = []
        start_at = 0

        while start_at < total:
            self._checkpoint()
            shown = min(start_at + self.page_size, total)
            self.tracker.emit(
                "fetching",
                f"Fetching issues ({shown}/{total})",
                5 + (start_at / total) * 25,
                total_issues=total,
                current_issue=start_at,
                current_operation="search",
                operation_details=f"startAt={start_at}",
            )
            page = self._remote(
                f"issue search at {start_at}",
                lambda: self.client.search_issues(
                    jql, start_at=start_at, max_results=self.page_size, fields=fields
                ),
            )
            batch = page.get("issues") or []
            issues.extend(batch)
            total = int(page.get("total", total) or 0)
            if not batch:
                break
            start_at += len(batch)

        self.log.info(f"Fetched {len(issues)} issues")
        self.tracker.emit(
            "fetching",
            f"Fetched {len(issues)} issues",
            30,
            total_issues=max(total, len(issues)),
            current_issue=len(issues),
        )
        return issues

    @trace_stage("processing")
    def _process(self, job: ExportJob, issues: List[Dict[str, Any]], outcome: ExportOutcome) -> None:
        self._checkpoint()
        self.tracker.emit("processing", "Processing issues", 30)
        if not job.download_type.includes_tickets:
            return

        records = [TicketRecord.from_issue(issue) for issue in issues]
        outcome.comment_count = sum(len(r.comments) for r in records)

        self._checkpoint()
        path = self.ticket_exporter.export(
            records, job.file_format, job.project_key, job.output_directory
        )
        self.ticket_file = path
        outcome.ticket_file = path
        size = self.storage.get_size(path) or 0
        self.tracker.emit(
            "processing",
            f"Wrote ticket data to {os.path.basename(path)} ({size / MEGABYTE:.1f}MB)",
            40,
            current_operation="export_tickets",
            operation_details=f"{len(records)} tickets, {outcome.comment_count} comments",
        )

    @trace_stage("analyzing")
    def _analyze(self, issues: List[Dict[str, Any]], outcome: ExportOutcome):
        self._checkpoint()
        descriptors = collect_attachments(issues)
        outcome.attachment_count = sum(1 for d in descriptors if d.total_size > 0)
        outcome.total_bytes = sum(d.total_size for d in descriptors)
        self.tracker.emit(
            "analyzing",
            f"Found {outcome.attachment_count} attachments "
            f"({outcome.total_bytes / MEGABYTE:.1f}MB)",
            50,
        )
        return descriptors

    @trace_stage("segmenting")
    def _segment(self, job: ExportJob, descriptors) -> List[SegmentPlan]:
        self._checkpoint()
        self.tracker.emit(
            "segmenting", f"Organizing {len(descriptors)} attachments", 55
        )
        plans = self.planner.plan(descriptors, self.segment_limit)
        if not plans:
            raise NothingToDownloadError(
                f"No attachments found in project {job.project_key}"
            )
        self.tracker.emit(
            "segmenting",
            f"Planned {len(plans)} segments of at most "
            f"{self.segment_limit / MEGABYTE:.1f}MB",
            60,
        )
        return plans

    @trace_stage("downloading")
    def _download(self, job: ExportJob, plans: List[SegmentPlan], outcome: ExportOutcome) -> List[ArchiveFile]:
        total_segments = len(plans)
        total_bytes = sum(plan.total_size for plan in plans) or 1
        downloaded = 0

        def on_part(part, fetched: int) -> None:
            nonlocal downloaded
            downloaded += part.size
            self.tracker.emit(
                "downloading",
                f"Downloaded {part.entry_filename}",
                60 + (downloaded / total_bytes) * 35,
                downloaded_size=downloaded,
                current_operation="download_attachment",
                operation_details=f"{part.ticket_key}/{part.entry_filename}",
            )

        for plan in plans:
            self._checkpoint()
            self.tracker.emit(
                "downloading",
                f"Downloading segment {plan.number}/{total_segments} "
                f"({plan.file_count} files)",
                60 + (downloaded / total_bytes) * 35,
                downloaded_size=downloaded,
                current_operation="build_segment",
                operation_details=f"segment {plan.number}",
            )
            archive = self.archive_builder.build(
                plan,
                job.project_key,
                self.client.fetch_attachment_range,
                job.output_directory,
                cancel_token=self.cancel_token,
                on_part=on_part,
            )
            self._archives.append(archive)
            if self.on_archive is not None:
                self.on_archive(archive)

        return list(self._archives)

    def _discard_archives(self) -> None:
        for archive in self._archives:
            try:
                self.storage.delete(archive.file_path)
                self.log.info(f"Removed archive {archive.filename} from failed run")
            except OSError as e:
                self.log.warning(f"Could not remove archive {archive.file_path}: {e}")
        self._archives = []
