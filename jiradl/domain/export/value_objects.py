"""
Export Value Objects

Transient, immutable records produced while exporting a project:
attachment descriptors, segment plans and ticket records.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class AttachmentDescriptor:
    """
    One attachment found while iterating fetched issues.

    Attributes:
        ticket_key: Issue the attachment belongs to
        filename: Attachment file name
        total_size: Declared size in bytes (0 when missing or malformed)
        content_locator: URL of the attachment content
    """
    ticket_key: str
    filename: str
    total_size: int
    content_locator: str

    def __post_init__(self):
        if self.total_size < 0:
            raise ValueError(f"Attachment size cannot be negative, got {self.total_size}")


@dataclass(frozen=True)
class SegmentPart:
    """
    A byte range of one attachment placed into a segment.

    Unsplit attachments are a single part covering [0, total_size).
    part_index is 1-based.
    """
    ticket_key: str
    filename: str
    content_locator: str
    part_index: int
    total_parts: int
    start_byte: int
    end_byte: int

    def __post_init__(self):
        if not 0 <= self.start_byte < self.end_byte:
            raise ValueError(
                f"Invalid byte range [{self.start_byte}, {self.end_byte})"
            )
        if not 1 <= self.part_index <= self.total_parts:
            raise ValueError(
                f"Part index {self.part_index} outside 1..{self.total_parts}"
            )

    @property
    def size(self) -> int:
        return self.end_byte - self.start_byte

    @property
    def is_split(self) -> bool:
        return self.total_parts > 1

    @property
    def entry_filename(self) -> str:
        """File name inside the archive, suffixed with the part index when split."""
        if self.is_split:
            return f"{self.filename}.part{self.part_index}"
        return self.filename


@dataclass(frozen=True)
class SegmentPlan:
    """
    The planner's description of one archive before any I/O.

    total_segments is 0 while planning and stamped once the pass is done.
    """
    number: int
    total_size: int
    parts: Tuple[SegmentPart, ...] = field(default_factory=tuple)
    total_segments: int = 0

    @property
    def file_count(self) -> int:
        return len(self.parts)

    @property
    def size_mb(self) -> float:
        return self.total_size / (1024 * 1024)

    def stamped(self, total_segments: int) -> 'SegmentPlan':
        return replace(self, total_segments=total_segments)


@dataclass(frozen=True)
class TicketComment:
    """A comment on an exported ticket."""
    author: str
    created: str
    body: str

    def to_dict(self) -> Dict[str, str]:
        return {"author": self.author, "created": self.created, "body": self.body}


@dataclass(frozen=True)
class TicketRecord:
    """Flattened view of an issue for the ticket export file."""
    key: str
    summary: str
    description: str
    created: str
    updated: str
    status: str
    priority: str
    assignee: str
    reporter: str
    comments: Tuple[TicketComment, ...] = field(default_factory=tuple)

    @classmethod
    def from_issue(cls, issue: Dict[str, Any]) -> 'TicketRecord':
        """Build a record from a raw tracker issue, blanking missing fields."""
        fields = issue.get("fields") or {}

        def name_of(value, attr="name") -> str:
            if isinstance(value, dict):
                return value.get(attr) or ""
            return ""

        comment_block = fields.get("comment") or {}
        comments = tuple(
            TicketComment(
                author=name_of(c.get("author"), "displayName"),
                created=c.get("created") or "",
                body=_text(c.get("body")),
            )
            for c in (comment_block.get("comments") or [])
            if isinstance(c, dict)
        )

        return cls(
            key=issue.get("key") or "",
            summary=fields.get("summary") or "",
            description=_text(fields.get("description")),
            created=fields.get("created") or "",
            updated=fields.get("updated") or "",
            status=name_of(fields.get("status")),
            priority=name_of(fields.get("priority")),
            assignee=name_of(fields.get("assignee"), "displayName"),
            reporter=name_of(fields.get("reporter"), "displayName"),
            comments=comments,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "summary": self.summary,
            "description": self.description,
            "created": self.created,
            "updated": self.updated,
            "status": self.status,
            "priority": self.priority,
            "assignee": self.assignee,
            "reporter": self.reporter,
            "comments": [c.to_dict() for c in self.comments],
        }


def _text(value: Any) -> str:
    """Flatten a plain string or an Atlassian document node into text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        if value.get("type") == "text":
            return value.get("text", "")
        chunks: List[str] = [_text(child) for child in value.get("content") or []]
        separator = "\n" if value.get("type") == "doc" else ""
        return separator.join(chunk for chunk in chunks if chunk)
    return str(value)
