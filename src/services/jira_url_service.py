# ==============================================
# Jira URL analysis, creation from URL and cloning
# ==============================================

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from src.clients.jira_client import JiraClient
from src.clients.openai_client import OpenAIClient
from src.config.analysis_rules import AnalysisRules, DEFAULT_RULES
from src.models.jira_models import Issue, ProjectInfo, TaskData
from src.services.pattern_analyzer import categorize, categorize_text
from src.services.task_generation_service import TaskGenerationService, merge_labels
from src.services.template_store import TemplateStore
from src.utils.exceptions import InvalidInputException, JiraClientException
from src.utils.jira_formatter import map_priority_from_jira
from src.utils.logger import get_logger

logger = get_logger(__name__)

ISSUE_KEY_PATTERN = re.compile(r'([A-Z]+-\d+)')
PROJECT_KEY_PATTERN = re.compile(r'projectKey=([A-Z]+)')
RAPID_VIEW_PATTERN = re.compile(r'rapidView=(\d+)')


@dataclass
class ParsedJiraUrl:
    """Keys extracted from a Jira URL"""
    issue_key: Optional[str]
    project_key: Optional[str]
    rapid_view_id: Optional[str]
    base_url: str
    original_url: str

    @property
    def is_valid(self) -> bool:
        return bool(self.issue_key or self.project_key)

    def to_dict(self) -> dict:
        return {
            'issueKey': self.issue_key,
            'projectKey': self.project_key,
            'rapidViewId': self.rapid_view_id,
            'baseUrl': self.base_url,
            'originalUrl': self.original_url,
            'isValid': self.is_valid
        }


def parse_jira_url(url: str) -> ParsedJiraUrl:
    """
    Extract issue key, project key and board id from a Jira URL

    The project key falls back to the issue key's prefix when the URL has
    no explicit ``projectKey=`` parameter.

    Raises:
        InvalidInputException: If the string is not an absolute URL
    """
    parsed = urlparse(url or '')
    if not parsed.scheme or not parsed.netloc:
        raise InvalidInputException(f"Not a valid URL: {url}", field='url')

    issue_match = ISSUE_KEY_PATTERN.search(url)
    project_match = PROJECT_KEY_PATTERN.search(url)
    rapid_view_match = RAPID_VIEW_PATTERN.search(url)

    issue_key = issue_match.group(1) if issue_match else None
    project_key = project_match.group(1) if project_match else None
    if project_key is None and issue_key:
        project_key = issue_key.split('-')[0]

    return ParsedJiraUrl(
        issue_key=issue_key,
        project_key=project_key,
        rapid_view_id=rapid_view_match.group(1) if rapid_view_match else None,
        base_url=f"{parsed.scheme}://{parsed.netloc}",
        original_url=url
    )


def description_from_issue(issue: Issue, additional_info: Optional[str] = None) -> str:
    """Plain description for a task derived from an existing issue"""
    description = f"Created from issue: {issue.key}\n\n"

    if issue.description:
        description += f"**Source description:**\n{issue.description}\n\n"

    description += f"**Status:** {issue.status}\n"
    description += f"**Priority:** {issue.priority}\n"
    description += f"**Assignee:** {issue.assignee}\n"

    if issue.labels:
        description += f"**Labels:** {', '.join(issue.labels)}\n"

    if additional_info:
        description += f"\n**Additional information:**\n{additional_info}"

    return description


class JiraUrlService:
    """Service for tasks driven by a Jira URL"""

    def __init__(
        self,
        jira_client: Optional[JiraClient],
        openai_client: OpenAIClient,
        template_store: TemplateStore,
        task_generation: TaskGenerationService,
        rules: AnalysisRules = DEFAULT_RULES
    ):
        self.jira_client = jira_client
        self.openai_client = openai_client
        self.template_store = template_store
        self.task_generation = task_generation
        self.rules = rules

    def analyze_url(self, url: str) -> Dict[str, Any]:
        """
        Parse a URL and look up the referenced issue and project

        Lookup failures are logged and reported as ``None``.

        Raises:
            InvalidInputException: If the URL has neither issue nor project key
        """
        parsed, issue_info, project_info = self._analyze(url)
        return {
            'parsed': parsed.to_dict(),
            'issueInfo': issue_info.to_dict() if issue_info else None,
            'projectInfo': project_info.to_dict() if project_info else None
        }

    def _analyze(self, url: str) -> Tuple[ParsedJiraUrl, Optional[Issue], Optional[ProjectInfo]]:
        parsed = parse_jira_url(url)
        if not parsed.is_valid:
            raise InvalidInputException("Invalid Jira URL: no issue or project key found", field='url')

        logger.info(f"Analyzing Jira URL: {url}")

        issue_info = None
        project_info = None

        if parsed.issue_key:
            try:
                issue_info = self.jira_client.get_issue(parsed.issue_key)
            except JiraClientException as e:
                logger.warning(f"Could not fetch issue {parsed.issue_key}: {e}")

        if parsed.project_key:
            try:
                project_info = self.jira_client.get_project_info(parsed.project_key)
            except JiraClientException as e:
                logger.warning(f"Could not fetch project {parsed.project_key}: {e}")

        return parsed, issue_info, project_info

    def _source_issue(self, url: str) -> Issue:
        _, issue, _ = self._analyze(url)
        if issue is None:
            raise InvalidInputException(
                "Could not load the source issue; the URL must point to an existing Jira issue",
                field='url'
            )
        return issue

    def create_from_url(
        self,
        url: str,
        assignee: Optional[str] = None,
        additional_info: Optional[str] = None,
        use_ai: bool = True,
        target_project: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create a new issue based on the issue a URL points to"""
        source = self._source_issue(url)
        category = categorize(source, self.rules).value
        template = self.template_store.get_template(category)

        logger.info(f"Creating task from {source.key} as {category}", extra={'issue_key': source.key})

        if use_ai:
            prompt = f"Create a task based on: {source.summary}. {additional_info or ''}".strip()
            task = self.task_generation.prepare_task(prompt, category, assignee, project_key=target_project)
        else:
            task = TaskData(
                title=f"[{category}] {source.summary}",
                description=description_from_issue(source, additional_info),
                priority=map_priority_from_jira(source.priority),
                labels=merge_labels(source.labels, template.labels),
                assignee=assignee or self.template_store.default_assignee(template.assignee_rule),
                project_key=target_project
            )

        return self._create(task, category, source)

    def clone_task(
        self,
        source_url: str,
        target_project: str,
        target_issue_type: Optional[str] = None,
        assignee: Optional[str] = None,
        additional_info: Optional[str] = None
    ) -> Dict[str, Any]:
        """Copy an issue into another project without AI rewriting"""
        source = self._source_issue(source_url)
        category = categorize(source, self.rules).value
        template = self.template_store.get_template(category)

        logger.info(f"Cloning {source.key} into {target_project}", extra={'issue_key': source.key})

        task = TaskData(
            title=f"[{category}] {source.summary}",
            description=description_from_issue(source, additional_info),
            priority=map_priority_from_jira(source.priority),
            labels=list(source.labels),
            assignee=assignee or self.template_store.default_assignee(template.assignee_rule),
            project_key=target_project,
            issue_type=target_issue_type
        )

        return self._create(task, category, source)

    def generate_from_url(self, url: str, description: Optional[str] = None) -> Dict[str, Any]:
        """
        Copy/paste mode: generate a task for the issue a URL names

        Does not call Jira; the category is guessed from the URL text.
        """
        parsed = parse_jira_url(url)
        if not parsed.issue_key:
            raise InvalidInputException("Could not extract an issue key from the URL", field='url')

        category = categorize_text(url, rules=self.rules).value
        prompt = f"{description or ''} Task: {parsed.issue_key}".strip()

        content = self.openai_client.generate_task_content(prompt, category)
        content.update({
            'sourceUrl': url,
            'sourceIssueKey': parsed.issue_key,
            'category': category
        })
        return content

    def get_issue_info(self, issue_key: str) -> Dict[str, Any]:
        return self.jira_client.get_issue(issue_key).to_dict()

    def get_project_info(self, project_key: str) -> Dict[str, Any]:
        return self.jira_client.get_project_info(project_key).to_dict()

    def _create(self, task: TaskData, category: str, source: Issue) -> Dict[str, Any]:
        created = self.jira_client.create_issue(task)
        return {
            **created.to_dict(),
            'title': task.title,
            'category': category,
            'priority': task.priority,
            'labels': task.labels,
            'assignee': task.assignee,
            'sourceIssue': {
                'key': source.key,
                'url': source.url,
                'summary': source.summary
            }
        }
