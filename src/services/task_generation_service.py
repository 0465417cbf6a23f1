# ==============================================
# AI task generation and Jira task creation
# ==============================================

import time
from typing import Any, Callable, Dict, List, Optional

from src.clients.jira_client import JiraClient
from src.clients.openai_client import OpenAIClient
from src.config.analysis_rules import AnalysisRules, DEFAULT_RULES
from src.models.jira_models import TaskData
from src.models.pattern_models import Template
from src.services.pattern_analyzer import categorize
from src.services.template_store import TemplateStore
from src.utils.exceptions import MissingConfigException
from src.utils.helpers import normalize_labels
from src.utils.logger import get_logger, ErrorCodeRegistry

logger = get_logger(__name__)

VARIANT_PAUSE_SECONDS = 1.0
AUTO_ASSIGN_TEXT = "Auto-assign"
NOT_SPECIFIED_TEXT = "Not specified"

OPTIONAL_PLACEHOLDERS = (
    'technical_requirements',
    'ui_requirements',
    'infrastructure_requirements',
    'metrics'
)


def merge_labels(*label_lists: List[str]) -> List[str]:
    """Concatenate label lists, dropping duplicates but keeping order"""
    return list(dict.fromkeys(label for labels in label_lists for label in normalize_labels(labels)))


def _bullets(items: Any) -> str:
    if isinstance(items, str):
        return f"- {items}"
    return '\n'.join(f"- {item}" for item in items or [])


def format_content_by_template(
    content: Dict[str, Any],
    template: Template,
    assignee: Optional[str] = None
) -> Dict[str, Any]:
    """
    Fill a template's title and description skeleton with generated content

    Args:
        content: Structured content (task_summary, goal, tasks, acceptance_criteria, ...)
        template: Category template
        assignee: Assignee shown in the description (defaults to auto-assign)

    Returns:
        Dict with title, description, priority, labels
    """
    priority = content.get('priority') or template.priority or 'Medium'

    title = template.title.replace('{{task_summary}}', str(content.get('task_summary', '')))

    description = template.description_skeleton
    description = description.replace('{{goal}}', str(content.get('goal', '')))
    description = description.replace('{{tasks}}', _bullets(content.get('tasks')))
    description = description.replace('{{acceptance_criteria}}', _bullets(content.get('acceptance_criteria')))
    description = description.replace('{{priority}}', priority)
    description = description.replace('{{assignee}}', assignee or AUTO_ASSIGN_TEXT)

    for placeholder in OPTIONAL_PLACEHOLDERS:
        value = content.get(placeholder) or NOT_SPECIFIED_TEXT
        description = description.replace(f'{{{{{placeholder}}}}}', str(value))

    return {
        'title': title,
        'description': description,
        'priority': priority,
        'labels': normalize_labels(content.get('labels'))
    }


class TaskGenerationService:
    """Service for generating task content and creating tasks in Jira"""

    def __init__(
        self,
        openai_client: OpenAIClient,
        template_store: TemplateStore,
        jira_client: Optional[JiraClient] = None,
        rules: AnalysisRules = DEFAULT_RULES,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.openai_client = openai_client
        self.template_store = template_store
        self.jira_client = jira_client
        self.rules = rules
        self.sleep = sleep

    def generate(self, description: str, category: str) -> Dict[str, Any]:
        """Copy/paste mode: generate a task without touching Jira"""
        content = self.openai_client.generate_task_content(description, category)
        content['category'] = category
        return content

    def generate_variants(self, description: str, category: str, count: int = 3) -> List[Dict[str, Any]]:
        """
        Generate ``count`` alternative tasks, pausing between requests

        Raises:
            ValueError: If count is outside 2..5
        """
        if not 2 <= count <= 5:
            raise ValueError("count must be between 2 and 5")

        logger.info(f"Generating {count} variants for category '{category}'")

        variants = []
        for i in range(count):
            content = self.openai_client.generate_task_content(
                f"{description} (Variant {i + 1})", category
            )
            content['variant'] = i + 1
            variants.append(content)

            if i < count - 1:
                self.sleep(VARIANT_PAUSE_SECONDS)

        return variants

    def prepare_task(
        self,
        description: str,
        category: str,
        assignee: Optional[str] = None,
        project_key: Optional[str] = None
    ) -> TaskData:
        """Generate structured content and fill the category template"""
        template = self.template_store.get_template(category)

        content = self.openai_client.generate_structured_content(description, category)
        formatted = format_content_by_template(content, template, assignee)

        return TaskData(
            title=formatted['title'],
            description=formatted['description'],
            priority=formatted['priority'],
            labels=merge_labels(formatted['labels'], template.labels),
            assignee=assignee or self.template_store.default_assignee(template.assignee_rule),
            project_key=project_key
        )

    def create_task(self, description: str, category: str, assignee: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate a task from the category template and create it in Jira

        Returns:
            Created issue key/url plus the task fields sent to Jira
        """
        self._require_jira()

        logger.info(f"Creating task for category '{category}'", extra={'category': category})

        task = self.prepare_task(description, category, assignee)
        created = self.jira_client.create_issue(task)

        return {
            **created.to_dict(),
            'title': task.title,
            'category': category,
            'priority': task.priority,
            'labels': task.labels,
            'assignee': task.assignee
        }

    def enhance_issue(self, issue_key: str) -> Dict[str, Any]:
        """
        Rewrite an existing issue with AI-generated content

        Summary and description are replaced; generated labels are appended
        to the existing ones.
        """
        self._require_jira()

        issue = self.jira_client.get_issue(issue_key)
        category = categorize(issue, self.rules)

        logger.info(f"Enhancing {issue_key} as {category.value}", extra={'issue_key': issue_key})

        content = self.openai_client.generate_task_content(issue.summary, category.value)
        labels = merge_labels(issue.labels, content.get('labels'))

        self.jira_client.update_issue(
            issue_key,
            summary=content['title'],
            description=content['description'],
            labels=labels
        )

        return {
            'issueKey': issue_key,
            'category': category.value,
            'title': content['title'],
            'labels': labels,
            'issueUrl': issue.url
        }

    def _require_jira(self):
        if self.jira_client is None:
            raise MissingConfigException(
                "Jira client is not configured",
                error_code=ErrorCodeRegistry.ERR_CONFIG_MISSING
            )
