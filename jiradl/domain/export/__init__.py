"""
Export Domain

Segment planning, ticket export and the remote tracker port.
"""

from .repositories import IssueTrackerClient
from .segment_planner import SegmentPlanner, collect_attachments, parse_size
from .ticket_exporter import TicketExporter
from .value_objects import (
    AttachmentDescriptor,
    SegmentPart,
    SegmentPlan,
    TicketComment,
    TicketRecord,
)

__all__ = [
    "AttachmentDescriptor",
    "IssueTrackerClient",
    "SegmentPart",
    "SegmentPlan",
    "SegmentPlanner",
    "TicketComment",
    "TicketExporter",
    "TicketRecord",
    "collect_attachments",
    "parse_size",
]
