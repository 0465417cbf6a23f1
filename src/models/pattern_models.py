# ==============================================
# Historical pattern analysis data models
# ==============================================

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from src.models.jira_models import Issue


class Category(str, Enum):
    """Closed set of issue categories"""
    DEVOPS = "DevOps"
    ANALYTICS = "Analytics"
    BACKEND = "Backend"
    FRONTEND = "Frontend"
    INFRASTRUCTURE = "Infrastructure"

    @classmethod
    def parse(cls, value: str) -> 'Category':
        """
        Resolve a category name, accepting the legacy Russian names

        Raises:
            ValueError: If the name is not a known category
        """
        normalized = CATEGORY_ALIASES.get(value.strip().lower())
        if normalized is None:
            raise ValueError(
                f"Unknown category '{value}'. "
                f"Expected one of: {', '.join(c.value for c in cls)}"
            )
        return normalized


CATEGORY_ALIASES: Dict[str, Category] = {
    **{c.value.lower(): c for c in Category},
    'аналитика': Category.ANALYTICS,
    'инфраструктура': Category.INFRASTRUCTURE,
}


@dataclass
class QualityAssessment:
    """Completeness heuristics for a single issue"""
    has_description: bool
    description_length: int
    has_labels: bool
    label_count: int
    summary_length: int
    is_well_structured: bool
    has_acceptance_criteria: bool
    has_technical_details: bool
    quality_score: int

    def to_dict(self) -> dict:
        return {
            'hasDescription': self.has_description,
            'descriptionLength': self.description_length,
            'hasLabels': self.has_labels,
            'labelCount': self.label_count,
            'summaryLength': self.summary_length,
            'isWellStructured': self.is_well_structured,
            'hasAcceptanceCriteria': self.has_acceptance_criteria,
            'hasTechnicalDetails': self.has_technical_details,
            'qualityScore': self.quality_score
        }


@dataclass
class AnalyzedIssue:
    """An issue with its derived category and quality assessment"""
    issue: Issue
    category: Category
    quality: QualityAssessment

    @property
    def quality_score(self) -> int:
        return self.quality.quality_score

    def to_dict(self) -> dict:
        data = self.issue.to_dict()
        data['category'] = self.category.value
        data['quality'] = self.quality.to_dict()
        return data


@dataclass
class QualityBuckets:
    """Partition of analyzed issues by quality score"""
    high: List[AnalyzedIssue] = field(default_factory=list)
    medium: List[AnalyzedIssue] = field(default_factory=list)
    low: List[AnalyzedIssue] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {'high': len(self.high), 'medium': len(self.medium), 'low': len(self.low)}


@dataclass
class PatternSet:
    """Aggregate statistics over a batch of issues"""
    categories: Dict[str, int] = field(default_factory=dict)
    priorities: Dict[str, int] = field(default_factory=dict)
    labels: Dict[str, int] = field(default_factory=dict)
    assignees: Dict[str, int] = field(default_factory=dict)
    quality: QualityBuckets = field(default_factory=QualityBuckets)

    @property
    def total(self) -> int:
        return sum(self.categories.values())

    def to_dict(self, include_issues: bool = False) -> dict:
        if include_issues:
            quality = {
                'high': [i.to_dict() for i in self.quality.high],
                'medium': [i.to_dict() for i in self.quality.medium],
                'low': [i.to_dict() for i in self.quality.low],
            }
        else:
            quality = self.quality.counts()

        return {
            'categories': dict(self.categories),
            'priorities': dict(self.priorities),
            'labels': dict(self.labels),
            'assignees': dict(self.assignees),
            'quality': quality
        }


@dataclass
class DescriptionStructure:
    """Which structural sections a description contains"""
    has_goal: bool = False
    has_tasks: bool = False
    has_criteria: bool = False
    has_technical: bool = False


@dataclass
class Template:
    """Per-category issue template"""
    name: str
    priority: str
    labels: List[str]
    assignee_rule: str
    description_skeleton: str
    based_on: int = 0
    quality_score: Optional[int] = None
    title: Optional[str] = None

    def __post_init__(self):
        if self.title is None:
            self.title = f"[{self.name}] {{{{task_summary}}}}"

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'priority': self.priority,
            'labels': list(self.labels),
            'assigneeRule': self.assignee_rule,
            'descriptionSkeleton': self.description_skeleton,
            'title': self.title,
            'basedOn': self.based_on,
            'qualityScore': self.quality_score
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Template':
        return cls(
            name=data['name'],
            priority=data.get('priority', 'Medium'),
            labels=list(data.get('labels', [])),
            assignee_rule=data.get('assigneeRule', 'auto-assign'),
            description_skeleton=data.get('descriptionSkeleton', ''),
            based_on=data.get('basedOn', 0),
            quality_score=data.get('qualityScore'),
            title=data.get('title')
        )
