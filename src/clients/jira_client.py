from jira import JIRA
from jira.exceptions import JIRAError
from typing import List, Optional, Dict, Any, Tuple

from src.config.settings import Config
from src.models.jira_models import (
    Issue, ProjectInfo, TaskData, CreatedIssue,
    UNASSIGNED, NO_PRIORITY, UNKNOWN_STATUS
)
from src.utils.exceptions import (
    JiraClientException,
    JiraAuthenticationException,
    JiraPermissionException,
    JiraIssueNotFoundException,
    FetchFailedException,
    InvalidInputException
)
from src.utils.helpers import safe_get
from src.utils.jira_formatter import adf_to_text, markdown_to_adf_document, map_priority_to_jira
from src.utils.logger import get_logger, PerformanceTimer, ErrorCodeRegistry

logger = get_logger(__name__)

DEFAULT_SEARCH_FIELDS = [
    'summary', 'description', 'status', 'priority', 'labels',
    'assignee', 'reporter', 'issuetype', 'created', 'updated'
]


class JiraClient:
    """Client for Jira Cloud REST API (v3)"""

    def __init__(self, config: Config, client: Optional[JIRA] = None):
        """
        Initialize Jira client

        Args:
            config: Application configuration
            client: Pre-built JIRA instance (tests)
        """
        self.config = config

        if client is not None:
            self.client = client
            return

        try:
            self.client = JIRA(
                server=config.jira.base_url,
                basic_auth=(config.jira.username, config.jira.api_token),
                options={'rest_api_version': '3'}
            )
            logger.info(f"Connected to Jira: {config.jira.base_url}")
        except (JIRAError, OSError) as e:
            raise self._translate_error(e, "Failed to connect to Jira")

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def search_issues(
        self,
        jql: str,
        start_at: int = 0,
        max_results: int = 100,
        fields: Optional[List[str]] = None
    ) -> Tuple[List[Issue], int]:
        """
        Run a JQL search through the token-paged ``search/jql`` endpoint

        Pages are walked with ``nextPageToken`` until ``start_at + max_results``
        issues have been seen. When the walk stops before the last page the
        total comes from Jira's approximate count.

        Args:
            jql: JQL query
            start_at: Pagination offset
            max_results: Page size
            fields: Extra fields to fetch on top of DEFAULT_SEARCH_FIELDS

        Returns:
            (issues, total) where total is the server-side match count

        Raises:
            FetchFailedException: If the search fails
        """
        logger.info(f"Searching Jira: '{jql}' (startAt={start_at}, maxResults={max_results})")
        search_fields = list(dict.fromkeys(DEFAULT_SEARCH_FIELDS + list(fields or [])))
        wanted = start_at + max_results

        raw_issues: List[Dict[str, Any]] = []
        token = None
        is_last = False

        try:
            with PerformanceTimer(logger, "jira search"):
                while len(raw_issues) < wanted:
                    page = self.client.enhanced_search_issues(
                        jql,
                        nextPageToken=token,
                        maxResults=max_results,
                        fields=search_fields,
                        json_result=True
                    )
                    raw_issues.extend(page.get('issues', []))
                    token = page.get('nextPageToken')
                    if page.get('isLast', True) or not token:
                        is_last = True
                        break

                if is_last:
                    total = len(raw_issues)
                else:
                    # More issues exist past the walked pages
                    total = max(self.client.approximate_issue_count(jql), len(raw_issues) + 1)
        except JIRAError as e:
            raise self._translate_error(
                e, f"Failed to fetch issues for '{jql}'",
                default=FetchFailedException,
                error_code=ErrorCodeRegistry.ERR_JIRA_FETCH
            )

        issues = [self._to_issue(raw) for raw in raw_issues[start_at:wanted]]

        logger.info(f"Found {len(issues)} issues (total {total})")
        return issues, total

    def get_issue(self, issue_key: str) -> Issue:
        """
        Fetch a single issue

        Raises:
            JiraIssueNotFoundException: If the issue does not exist
        """
        logger.info(f"Fetching Jira issue: {issue_key}")

        try:
            issue = self.client.issue(issue_key, fields=','.join(DEFAULT_SEARCH_FIELDS))
        except JIRAError as e:
            raise self._translate_error(
                e, f"Failed to fetch issue {issue_key}",
                error_code=ErrorCodeRegistry.ERR_JIRA_FETCH,
                issue_key=issue_key
            )

        return self._to_issue(issue.raw)

    def get_project_info(self, project_key: Optional[str] = None) -> ProjectInfo:
        """Fetch project details (name, lead, issue types)"""
        project_key = project_key or self.config.jira.project_key
        logger.info(f"Fetching Jira project: {project_key}")

        try:
            project = self.client.project(project_key)
        except JIRAError as e:
            raise self._translate_error(
                e, f"Failed to fetch project {project_key}",
                error_code=ErrorCodeRegistry.ERR_JIRA_FETCH,
                project_key=project_key
            )

        raw = project.raw
        issue_types = [
            {
                'id': it.get('id'),
                'name': it.get('name'),
                'description': it.get('description', ''),
                'subtask': it.get('subtask', False)
            }
            for it in raw.get('issueTypes', [])
        ]

        return ProjectInfo(
            key=raw.get('key', project_key),
            name=raw.get('name', project_key),
            description=raw.get('description') or '',
            lead=safe_get(raw, 'lead', 'displayName', default=''),
            issue_types=issue_types,
            url=f"{self.config.jira.base_url}/browse/{project_key}"
        )

    def get_issue_types(self, project_key: Optional[str] = None) -> List[Dict[str, Any]]:
        """Issue types available in a project"""
        return self.get_project_info(project_key).issue_types

    def get_account_id_by_email(self, email: str) -> str:
        """
        Resolve a user's accountId by email

        Raises:
            InvalidInputException: If no user matches
        """
        logger.debug(f"Looking up Jira user: {email}")

        try:
            users = self.client.search_users(query=email)
        except JIRAError as e:
            raise self._translate_error(
                e, f"Failed to look up user {email}",
                error_code=ErrorCodeRegistry.ERR_JIRA_USER
            )

        if not users:
            raise InvalidInputException(f"Jira user with email {email} not found", field='assignee')

        user = users[0]
        return getattr(user, 'accountId', None) or user.raw.get('accountId')

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def create_issue(self, task: TaskData) -> CreatedIssue:
        """
        Create an issue from generated task data

        Description is converted to ADF, priority mapped to Jira names and the
        assignee (an email) resolved to an accountId.

        Returns:
            CreatedIssue with key, id and browse URL
        """
        project_key = task.project_key or self.config.jira.project_key
        fields = {
            'project': {'key': project_key},
            'issuetype': {'name': task.issue_type or self.config.jira.issue_type},
            'summary': task.title,
            'description': markdown_to_adf_document(task.description),
            'priority': {'name': map_priority_to_jira(task.priority)},
            'labels': list(task.labels or [])
        }

        if task.assignee:
            fields['assignee'] = {'accountId': self.get_account_id_by_email(task.assignee)}

        logger.info(f"Creating Jira issue in {project_key}: {task.title}")

        try:
            with PerformanceTimer(logger, "jira create issue", project_key=project_key):
                issue = self.client.create_issue(fields=fields)
        except JIRAError as e:
            raise self._translate_error(
                e, f"Failed to create issue in {project_key}",
                error_code=ErrorCodeRegistry.ERR_JIRA_CREATE,
                project_key=project_key
            )

        created = CreatedIssue(
            issue_key=issue.key,
            issue_id=str(issue.id),
            issue_url=self.config.jira.browse_url(issue.key)
        )
        logger.info(f"Created Jira issue {created.issue_key}")
        return created

    def update_issue(
        self,
        issue_key: str,
        summary: Optional[str] = None,
        description: Optional[str] = None,
        labels: Optional[List[str]] = None
    ) -> None:
        """Update summary / description / labels of an existing issue"""
        fields: Dict[str, Any] = {}
        if summary is not None:
            fields['summary'] = summary
        if description is not None:
            fields['description'] = markdown_to_adf_document(description)
        if labels is not None:
            fields['labels'] = list(labels)

        if not fields:
            return

        logger.info(f"Updating Jira issue {issue_key}: {', '.join(fields)}")

        try:
            issue = self.client.issue(issue_key, fields='summary')
            issue.update(fields=fields)
        except JIRAError as e:
            raise self._translate_error(
                e, f"Failed to update issue {issue_key}",
                error_code=ErrorCodeRegistry.ERR_JIRA_UPDATE,
                issue_key=issue_key
            )

    def test_connection(self) -> bool:
        """Check that the configured project is reachable"""
        try:
            self.get_project_info()
            return True
        except JiraClientException as e:
            logger.error(f"Jira connection check failed: {e}")
            return False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_issue(self, raw: Dict[str, Any]) -> Issue:
        """Map a raw Jira issue payload to an Issue"""
        fields = raw.get('fields') or {}
        key = raw.get('key')

        return Issue(
            key=key,
            summary=fields.get('summary'),
            description=adf_to_text(fields.get('description')),
            status=safe_get(fields, 'status', 'name', default=UNKNOWN_STATUS),
            priority=safe_get(fields, 'priority', 'name', default=NO_PRIORITY),
            labels=fields.get('labels') or [],
            assignee=safe_get(fields, 'assignee', 'displayName', default=UNASSIGNED),
            issue_type=safe_get(fields, 'issuetype', 'name', default='Task'),
            created=fields.get('created'),
            updated=fields.get('updated'),
            reporter=safe_get(fields, 'reporter', 'displayName', default=''),
            url=self.config.jira.browse_url(key) if key else None
        )

    def _translate_error(
        self,
        error: JIRAError,
        message: str,
        default=JiraClientException,
        error_code: Optional[str] = None,
        **context
    ) -> JiraClientException:
        """Pick the exception type matching the Jira HTTP status"""
        status_code = getattr(error, 'status_code', None)
        detail = getattr(error, 'text', None) or str(error)

        if status_code == 401:
            exc_class, error_code = JiraAuthenticationException, ErrorCodeRegistry.ERR_JIRA_AUTH
        elif status_code == 403:
            exc_class = JiraPermissionException
        elif status_code == 404:
            exc_class, error_code = JiraIssueNotFoundException, ErrorCodeRegistry.ERR_JIRA_NOT_FOUND
        else:
            exc_class = default

        logger.error(f"{message}: {detail} (status {status_code})")

        return exc_class(
            f"{message}: {detail}",
            error_code=error_code,
            context={'status_code': status_code, **context},
            original_exception=error
        )
