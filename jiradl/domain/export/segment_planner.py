"""
Segment Planner

Partitions a project's attachments into bounded-size archive segments.
Pure domain logic: no I/O, deterministic for a given input order.
"""

import logging
import math
from typing import Any, Dict, Iterable, List

from .value_objects import AttachmentDescriptor, SegmentPart, SegmentPlan

logger = logging.getLogger(__name__)


def parse_size(value: Any) -> int:
    """
    Parse declared attachment size metadata.

    Missing, malformed or negative values degrade to 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        size = int(value)
    except (TypeError, ValueError):
        try:
            size = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0
    return size if size > 0 else 0


def collect_attachments(issues: Iterable[Dict[str, Any]]) -> List[AttachmentDescriptor]:
    """
    Build attachment descriptors from raw tracker issues, in issue order.

    Args:
        issues: Issues as returned by the search API

    Returns:
        One descriptor per attachment, including zero-size ones
    """
    descriptors = []
    for issue in issues:
        fields = issue.get("fields") or {}
        for attachment in fields.get("attachment") or []:
            if not isinstance(attachment, dict):
                continue
            descriptors.append(
                AttachmentDescriptor(
                    ticket_key=issue.get("key") or "",
                    filename=attachment.get("filename") or f"attachment-{attachment.get('id', '')}",
                    total_size=parse_size(attachment.get("size")),
                    content_locator=attachment.get("content") or "",
                )
            )
    return descriptors


class SegmentPlanner:
    """
    Domain service that plans archive segments.

    Single pass over the attachments in input order:

    - zero-size attachments are skipped with a warning
    - an attachment larger than the limit becomes ceil(size / limit)
      single-part plans of min(limit, remaining) bytes each
    - otherwise the attachment joins the current plan, flushing it
      first when it would overflow the limit

    Plans are numbered from 1 in emission order and stamped with the
    final segment count once the pass is complete.
    """

    def plan(self, attachments: Iterable[AttachmentDescriptor], limit: int) -> List[SegmentPlan]:
        """
        Plan segments for the given attachments.

        Args:
            attachments: Attachment descriptors in export order
            limit: Maximum segment size in bytes

        Returns:
            Ordered list of segment plans, empty when nothing has a size

        Raises:
            ValueError: If limit is not positive
        """
        if limit <= 0:
            raise ValueError(f"Segment size limit must be positive, got {limit}")

        emitted: List[List] = []
        current: List[SegmentPart] = []
        current_size = 0

        for attachment in attachments:
            size = attachment.total_size
            if size <= 0:
                logger.warning(
                    f"Skipping attachment {attachment.filename} on {attachment.ticket_key}: "
                    f"size is zero or unknown"
                )
                continue

            if size > limit:
                total_parts = math.ceil(size / limit)
                for index in range(total_parts):
                    start = index * limit
                    end = min(start + limit, size)
                    part = SegmentPart(
                        ticket_key=attachment.ticket_key,
                        filename=attachment.filename,
                        content_locator=attachment.content_locator,
                        part_index=index + 1,
                        total_parts=total_parts,
                        start_byte=start,
                        end_byte=end,
                    )
                    emitted.append([part])
                continue

            part = SegmentPart(
                ticket_key=attachment.ticket_key,
                filename=attachment.filename,
                content_locator=attachment.content_locator,
                part_index=1,
                total_parts=1,
                start_byte=0,
                end_byte=size,
            )
            if current_size + size > limit:
                if current:
                    emitted.append(current)
                current = [part]
                current_size = size
            else:
                current.append(part)
                current_size += size

        if current:
            emitted.append(current)

        total = len(emitted)
        plans = [
            SegmentPlan(
                number=number,
                total_size=sum(p.size for p in parts),
                parts=tuple(parts),
                total_segments=total,
            )
            for number, parts in enumerate(emitted, start=1)
        ]

        logger.debug(f"Planned {total} segments with limit {limit} bytes")
        return plans
