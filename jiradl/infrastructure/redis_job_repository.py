"""
Redis Job Repository Implementation

Concrete Redis-based implementation of JobRepository.

Layout:
    job:{job_id}            JSON job record (without segments)
    job:{job_id}:segments   hash of segment_number -> JSON segment
    jobs:index              sorted set of job ids scored by created_at
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from redis.exceptions import RedisError

from jiradl.domain.job_management.entities import ExportJob, Segment
from jiradl.domain.job_management.repositories import JobRepository
from jiradl.domain.job_management.value_objects import JobProgress, JobStatus, SegmentStatus

logger = logging.getLogger(__name__)

# Compare-and-set of the job status. Returns 1 on success, 0 when the job
# is missing, -1 when the stored status differs from the expected one.
UPDATE_STATUS_SCRIPT = """
local key = KEYS[1]
local status = ARGV[1]
local updated_at = ARGV[2]
local error_message = ARGV[3]
local completed_at = ARGV[4]
local expected = ARGV[5]

local data = redis.call('GET', key)
if not data then
    return 0
end

local job_data = cjson.decode(data)
if expected ~= '' and job_data['status'] ~= expected then
    return -1
end

job_data['status'] = status
job_data['updated_at'] = updated_at
if error_message ~= '' then
    job_data['error'] = error_message
end
if completed_at ~= '' then
    job_data['completed_at'] = completed_at
end

redis.call('SET', key, cjson.encode(job_data))
return 1
"""

UPDATE_PROGRESS_SCRIPT = """
local key = KEYS[1]
local data = redis.call('GET', key)
if not data then
    return 0
end

local job_data = cjson.decode(data)
job_data['progress'] = cjson.decode(ARGV[1])
job_data['updated_at'] = ARGV[2]

redis.call('SET', key, cjson.encode(job_data))
return 1
"""

UPDATE_SEGMENT_SCRIPT = """
local key = KEYS[1]
local field = ARGV[1]
local data = redis.call('HGET', key, field)
if not data then
    return 0
end

local segment = cjson.decode(data)
segment['status'] = ARGV[2]
segment['updated_at'] = ARGV[3]

redis.call('HSET', key, field, cjson.encode(segment))
return 1
"""


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RedisJobRepository(JobRepository):
    """
    Redis-based implementation of JobRepository.

    Status changes and progress updates are Lua scripts so they apply
    atomically; deletes and segment inserts run in MULTI transactions.
    """

    def __init__(self, redis_repository):
        """
        Initialize with Redis repository.

        Args:
            redis_repository: RedisRepository instance from infrastructure layer
        """
        self.redis_repo = redis_repository
        self.key_prefix = "job"
        self.index_key = "jobs:index"

    def _job_key(self, job_id: str) -> str:
        return f"{self.key_prefix}:{job_id}"

    def _segments_key(self, job_id: str) -> str:
        return f"{self.key_prefix}:{job_id}:segments"

    def _raw(self, key: str) -> str:
        return self.redis_repo._make_key(key)

    def save(self, job: ExportJob) -> bool:
        """Save or update a job and index it by creation time."""
        try:
            pipeline = self.redis_repo.redis.pipeline(transaction=True)
            pipeline.set(
                self._raw(self._job_key(job.job_id)),
                json.dumps(job.to_dict(include_segments=False)),
            )
            pipeline.zadd(
                self._raw(self.index_key), {job.job_id: job.created_at.timestamp()}
            )
            pipeline.execute()
            return True
        except RedisError as e:
            logger.error(f"Error saving job {job.job_id}: {e}")
            return False

    def get(self, job_id: str) -> Optional[ExportJob]:
        """Retrieve a job from Redis."""
        data = self.redis_repo.get_json(self._job_key(job_id))
        if data is None:
            return None

        try:
            return ExportJob.from_dict(data)
        except (KeyError, ValueError) as e:
            logger.error(f"Error deserializing job {job_id}: {e}")
            return None

    def delete(self, job_id: str) -> bool:
        """Delete job record, segments and index entry in one transaction."""
        try:
            pipeline = self.redis_repo.redis.pipeline(transaction=True)
            pipeline.delete(self._raw(self._job_key(job_id)))
            pipeline.delete(self._raw(self._segments_key(job_id)))
            pipeline.zrem(self._raw(self.index_key), job_id)
            deleted, _, _ = pipeline.execute()
            return deleted > 0
        except RedisError as e:
            logger.error(f"Error deleting job {job_id}: {e}")
            return False

    def exists(self, job_id: str) -> bool:
        """Check if job exists in Redis."""
        return self.redis_repo.exists(self._job_key(job_id))

    def update_progress(self, job_id: str, progress: JobProgress) -> bool:
        """Atomically update job progress and updated_at."""
        try:
            result = self.redis_repo.redis.eval(
                UPDATE_PROGRESS_SCRIPT,
                1,
                self._raw(self._job_key(job_id)),
                json.dumps(progress.to_dict()),
                _now().isoformat(),
            )
            return result == 1
        except RedisError as e:
            logger.error(f"Error updating progress for job {job_id}: {e}")
            return False

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        error: Optional[str] = None,
        completed_at: Optional[datetime] = None,
        expected_status: Optional[JobStatus] = None,
    ) -> bool:
        """Atomically update job status, optionally as a compare-and-set."""
        try:
            result = self.redis_repo.redis.eval(
                UPDATE_STATUS_SCRIPT,
                1,
                self._raw(self._job_key(job_id)),
                status.value,
                _now().isoformat(),
                error or "",
                completed_at.isoformat() if completed_at else "",
                expected_status.value if expected_status else "",
            )
            return result == 1
        except RedisError as e:
            logger.error(f"Error updating status for job {job_id}: {e}")
            return False

    def list_all(self) -> List[ExportJob]:
        """List every job newest first using the creation-time index."""
        try:
            raw_ids = self.redis_repo.redis.zrevrange(self._raw(self.index_key), 0, -1)
        except RedisError as e:
            logger.error(f"Error reading job index: {e}")
            return []

        job_ids = [i.decode("utf-8") if isinstance(i, bytes) else i for i in raw_ids]
        records = self.redis_repo.get_many_json([self._job_key(i) for i in job_ids])

        jobs = []
        for job_id, data in zip(job_ids, records):
            if data is None:
                continue
            try:
                jobs.append(ExportJob.from_dict(data))
            except (KeyError, ValueError) as e:
                logger.error(f"Error deserializing job {job_id}: {e}")
        return jobs

    def get_expired_jobs(self, retention: timedelta) -> List[str]:
        """Terminal jobs whose last update is older than the retention window."""
        cutoff = _now() - retention
        return [
            job.job_id
            for job in self.list_all()
            if job.is_terminal() and job.updated_at < cutoff
        ]

    def save_segments(self, job_id: str, segments: List[Segment]) -> bool:
        """Insert all segment rows of a job in one transaction."""
        if not segments:
            return True
        try:
            mapping = {
                str(segment.segment_number): json.dumps(segment.to_dict())
                for segment in segments
            }
            pipeline = self.redis_repo.redis.pipeline(transaction=True)
            pipeline.hset(self._raw(self._segments_key(job_id)), mapping=mapping)
            pipeline.execute()
            return True
        except RedisError as e:
            logger.error(f"Error saving segments for job {job_id}: {e}")
            return False

    def get_segments(self, job_id: str) -> List[Segment]:
        """Get a job's segments ordered by segment_number."""
        try:
            raw = self.redis_repo.redis.hgetall(self._raw(self._segments_key(job_id)))
        except RedisError as e:
            logger.error(f"Error reading segments for job {job_id}: {e}")
            return []

        segments = []
        for value in raw.values():
            try:
                segments.append(Segment.from_dict(self.redis_repo._decode(value)))
            except (KeyError, ValueError) as e:
                logger.error(f"Error deserializing segment of job {job_id}: {e}")
        return sorted(segments, key=lambda s: s.segment_number)

    def update_segment_status(
        self, job_id: str, segment_number: int, status: SegmentStatus
    ) -> bool:
        """Update the status of a single segment."""
        try:
            result = self.redis_repo.redis.eval(
                UPDATE_SEGMENT_SCRIPT,
                1,
                self._raw(self._segments_key(job_id)),
                str(segment_number),
                status.value,
                _now().isoformat(),
            )
            return result == 1
        except RedisError as e:
            logger.error(f"Error updating segment {segment_number} of job {job_id}: {e}")
            return False
