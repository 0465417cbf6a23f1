# ==============================================
# Historical issue parsing, pattern analysis and template synthesis
# ==============================================

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from src.clients.jira_client import JiraClient
from src.clients.openai_client import OpenAIClient
from src.config.analysis_rules import AnalysisRules, DEFAULT_RULES
from src.config.settings import Config
from src.models.jira_models import Issue
from src.models.pattern_models import AnalyzedIssue, PatternSet, Template
from src.services.pattern_analyzer import aggregate, analyze_issues
from src.services.template_store import TemplateStore
from src.services.template_synthesizer import synthesize_templates
from src.utils.exceptions import InvalidInputException
from src.utils.helpers import round_half_up, top_counts
from src.utils.logger import ErrorCodeRegistry, get_logger, PerformanceTimer

logger = get_logger(__name__)

# Issues at or above this score are used as generation context
CONTEXT_QUALITY_THRESHOLD = 70
CONTEXT_MAX_EXAMPLES = 5
CONTEXT_EXCERPT_LENGTH = 200
CONTEXT_MIN_DESCRIPTION = 50

STATS_MAX_RESULTS = 200


@dataclass
class HistoricalBatch:
    """One page of analyzed historical issues"""
    total: int
    issues: List[AnalyzedIssue] = field(default_factory=list)
    has_more: bool = False


class HistoricalDataService:
    """
    Service for learning from a project's past issues

    Fetches issues through the Jira client, runs the pattern analyzer and
    template synthesizer, persists synthesized templates and uses high
    quality issues as context for new generations.
    """

    def __init__(
        self,
        config: Config,
        jira_client: Optional[JiraClient],
        openai_client: Optional[OpenAIClient],
        template_store: TemplateStore,
        rules: AnalysisRules = DEFAULT_RULES
    ):
        self.config = config
        self.jira_client = jira_client
        self.openai_client = openai_client
        self.template_store = template_store
        self.rules = rules

    def parse_historical_tasks(
        self,
        project_key: Optional[str] = None,
        max_results: int = 100,
        start_at: int = 0,
        jql: Optional[str] = None,
        fields: Optional[List[str]] = None
    ) -> HistoricalBatch:
        """
        Fetch a page of issues and analyze each one

        Args:
            project_key: Project to read (defaults to JIRA_PROJECT_KEY)
            max_results: Page size
            start_at: Pagination offset
            jql: Custom JQL overriding ``project = <key>``
            fields: Extra Jira fields to request on top of the analyzed ones

        Raises:
            InvalidInputException: If neither jql nor a project key is available
            FetchFailedException: If Jira cannot be queried
        """
        project_key = project_key or self.config.jira.project_key
        if not jql and not project_key:
            raise InvalidInputException("projectKey or jql is required", field='projectKey')

        query = jql or f"project = {project_key}"
        get_logger(__name__, project_key=project_key).info(f"Parsing historical tasks: {query}")

        issues, total = self.jira_client.search_issues(
            query, start_at=start_at, max_results=max_results, fields=fields
        )

        with PerformanceTimer(logger, "historical analysis", project_key=project_key):
            analyzed = analyze_issues(issues, self.rules)

        return HistoricalBatch(
            total=total,
            issues=analyzed,
            has_more=total > start_at + max_results
        )

    def analyze_patterns(self, issues: Sequence[AnalyzedIssue]) -> PatternSet:
        return aggregate(issues, self.rules)

    def create_templates(self, issues: Sequence[AnalyzedIssue], persist: bool = True) -> Dict[str, Template]:
        """Synthesize per-category templates and save them to the store"""
        templates = synthesize_templates(issues, self.rules)

        if persist:
            for key, template in templates.items():
                self.template_store.save(key, template)

        logger.info(f"Synthesized {len(templates)} templates from {len(issues)} issues")
        return templates

    def analyze_issue_records(self, records: Sequence[Dict[str, Any]]) -> List[AnalyzedIssue]:
        """
        Validate and analyze caller-supplied issue payloads

        Raises:
            InvalidInputException: Naming the first missing required field
        """
        issues = []
        for index, record in enumerate(records):
            try:
                issues.append(Issue.from_dict(record))
            except InvalidInputException as e:
                raise InvalidInputException(
                    f"Issue #{index}: {e.message}",
                    field=f"issues[{index}].{e.field}" if e.field else f"issues[{index}]",
                    error_code=ErrorCodeRegistry.ERR_DATA_INVALID
                )
        return analyze_issues(issues, self.rules)

    def build_historical_context(self, issues: Sequence[AnalyzedIssue]) -> str:
        """Prompt context from the first few good-quality issues ('' if none)"""
        examples = [
            analyzed for analyzed in issues
            if analyzed.quality_score >= CONTEXT_QUALITY_THRESHOLD
        ][:CONTEXT_MAX_EXAMPLES]

        if not examples:
            return ''

        context = "Examples of well-written tasks from history:\n\n"

        for index, analyzed in enumerate(examples, start=1):
            issue = analyzed.issue
            context += f"{index}. {issue.summary}\n"
            context += f"   Priority: {issue.priority}\n"
            context += f"   Labels: {', '.join(issue.labels)}\n"
            if len(issue.description) > CONTEXT_MIN_DESCRIPTION:
                context += f"   Description: {issue.description[:CONTEXT_EXCERPT_LENGTH]}...\n"
            context += "\n"

        return context

    def generate_recommendations(self, patterns: PatternSet) -> List[Dict[str, Any]]:
        """Top categories, priorities, labels and the share of high quality issues"""
        recommendations = []

        top_categories = top_counts(patterns.categories, 3)
        if top_categories:
            recommendations.append({
                'type': 'categories',
                'message': f"Most active categories: {', '.join(c for c, _ in top_categories)}",
                'data': top_categories
            })

        top_priorities = top_counts(patterns.priorities, 2)
        if top_priorities:
            recommendations.append({
                'type': 'priorities',
                'message': f"Most used priorities: {', '.join(p for p, _ in top_priorities)}",
                'data': top_priorities
            })

        top_labels = top_counts(patterns.labels, 5)
        if top_labels:
            recommendations.append({
                'type': 'labels',
                'message': f"Popular labels: {', '.join(l for l, _ in top_labels)}",
                'data': top_labels
            })

        counts = patterns.quality.counts()
        total = sum(counts.values())
        percentage = round_half_up(counts['high'] / total * 100) if total else 0

        recommendations.append({
            'type': 'quality',
            'message': f"Task quality: {percentage}% high quality",
            'data': {**counts, 'percentage': percentage}
        })

        return recommendations

    def create_task_from_history(
        self,
        description: str,
        category: str,
        use_historical_data: bool = True,
        project_key: Optional[str] = None,
        max_historical_tasks: int = 20
    ) -> Dict[str, Any]:
        """Generate a copy/paste task, adding same-category history as context"""
        context = ''

        if use_historical_data:
            batch = self.parse_historical_tasks(project_key=project_key, max_results=max_historical_tasks)
            same_category = [a for a in batch.issues if a.category.value == category]

            if same_category:
                context = self.build_historical_context(same_category)
                logger.info(f"Using {len(same_category)} historical {category} tasks as context")

        prompt = f"{description}\n\nContext from historical tasks:\n{context}" if context else description

        content = self.openai_client.generate_task_content(prompt, category)
        content['category'] = category
        content['historicalContext'] = 'used' if context else 'not used'
        return content

    def get_stats(self, project_key: str) -> Dict[str, Any]:
        """Category/priority/label/quality statistics for a project"""
        batch = self.parse_historical_tasks(project_key=project_key, max_results=STATS_MAX_RESULTS)
        patterns = self.analyze_patterns(batch.issues)
        templates = self.create_templates(batch.issues)

        return {
            'project': project_key,
            'totalTasks': len(batch.issues),
            'categories': patterns.categories,
            'priorities': patterns.priorities,
            'topLabels': top_counts(patterns.labels, 10),
            'quality': patterns.quality.counts(),
            'templates': len(templates),
            'recommendations': self.generate_recommendations(patterns)
        }

    def analysis_payload(self, issues: Sequence[AnalyzedIssue]) -> Dict[str, Any]:
        """Patterns + templates + recommendations for a set of analyzed issues"""
        patterns = self.analyze_patterns(issues)
        templates = self.create_templates(issues)

        return {
            'totalTasks': len(issues),
            'patterns': patterns.to_dict(),
            'templates': {key: t.to_dict() for key, t in templates.items()},
            'recommendations': self.generate_recommendations(patterns)
        }
