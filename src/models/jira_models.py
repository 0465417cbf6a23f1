# ==============================================
# Jira data models
# ==============================================

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
from dateutil import parser as date_parser

from src.utils.exceptions import InvalidInputException

UNASSIGNED = "Unassigned"
NO_PRIORITY = "None"
UNKNOWN_STATUS = "Unknown"


@dataclass
class Issue:
    """
    Jira issue as seen by the analyzer

    ``key`` and ``summary`` are required; missing optional fields are filled
    with the documented sentinels (``priority="None"``,
    ``assignee="Unassigned"``, ``status="Unknown"``).
    """
    key: str
    summary: str
    description: str = ""
    status: str = UNKNOWN_STATUS
    priority: str = NO_PRIORITY
    labels: List[str] = field(default_factory=list)
    assignee: str = UNASSIGNED
    issue_type: str = "Task"
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    reporter: str = ""
    url: Optional[str] = None

    def __post_init__(self):
        for required in ('key', 'summary'):
            value = getattr(self, required)
            if not isinstance(value, str) or not value.strip():
                raise InvalidInputException(
                    f"Issue is missing required field '{required}'",
                    field=required,
                    context={'key': self.key if isinstance(self.key, str) else None}
                )

        for name in ('description', 'status', 'priority', 'assignee', 'issue_type', 'reporter'):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise InvalidInputException(
                    f"Issue field '{name}' must be a string",
                    field=name,
                    context={'key': self.key}
                )

        labels = self.labels or []
        if not isinstance(labels, (list, tuple)) or not all(isinstance(label, str) for label in labels):
            raise InvalidInputException(
                "Issue field 'labels' must be a list of strings",
                field='labels',
                context={'key': self.key}
            )

        self.description = self.description or ""
        self.status = self.status or UNKNOWN_STATUS
        self.priority = self.priority or NO_PRIORITY
        self.assignee = self.assignee or UNASSIGNED
        self.issue_type = self.issue_type or "Task"
        self.reporter = self.reporter or ""
        # Labels are a set; keep first-seen order
        self.labels = list(dict.fromkeys(labels))
        self.created = _parse_date(self.created)
        self.updated = _parse_date(self.updated)

    @property
    def is_assigned(self) -> bool:
        return self.assignee.strip().lower() not in ('', UNASSIGNED.lower())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Issue':
        """
        Build an issue from an untyped payload (browser collection, API body)

        Accepts both ``issueType`` and ``issue_type`` spellings.

        Raises:
            InvalidInputException: If key or summary is missing
        """
        if not isinstance(data, dict):
            raise InvalidInputException("Issue payload must be an object", field='issue')

        return cls(
            key=data.get('key'),
            summary=data.get('summary'),
            description=data.get('description') or "",
            status=data.get('status') or UNKNOWN_STATUS,
            priority=data.get('priority') or NO_PRIORITY,
            labels=data.get('labels') or [],
            assignee=data.get('assignee') or UNASSIGNED,
            issue_type=data.get('issueType') or data.get('issue_type') or "Task",
            created=data.get('created'),
            updated=data.get('updated'),
            reporter=data.get('reporter') or "",
            url=data.get('url')
        )

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'key': self.key,
            'summary': self.summary,
            'description': self.description,
            'status': self.status,
            'priority': self.priority,
            'labels': self.labels,
            'assignee': self.assignee,
            'issueType': self.issue_type,
            'reporter': self.reporter,
            'created': self.created.isoformat() if self.created else None,
            'updated': self.updated.isoformat() if self.updated else None,
            'url': self.url
        }


@dataclass
class ProjectInfo:
    """Jira project summary"""
    key: str
    name: str
    description: str = ""
    lead: str = ""
    issue_types: List[Dict[str, Any]] = field(default_factory=list)
    url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'key': self.key,
            'name': self.name,
            'description': self.description,
            'lead': self.lead,
            'issueTypes': self.issue_types,
            'url': self.url
        }


@dataclass
class TaskData:
    """Fields used to create an issue in Jira"""
    title: str
    description: str
    priority: str = "Medium"
    labels: List[str] = field(default_factory=list)
    assignee: Optional[str] = None
    project_key: Optional[str] = None
    issue_type: Optional[str] = None


@dataclass
class CreatedIssue:
    """Result of a successful issue creation"""
    issue_key: str
    issue_id: str
    issue_url: str

    def to_dict(self) -> dict:
        return {
            'issueKey': self.issue_key,
            'issueId': self.issue_id,
            'issueUrl': self.issue_url
        }


def _parse_date(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError):
        return None
