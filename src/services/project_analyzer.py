# ==============================================
# Full-project analysis over a list of scraped issue keys
# ==============================================

import re
import time
from collections import Counter
from typing import Any, Callable, Dict, List

from src.clients.jira_client import JiraClient
from src.config.analysis_rules import AnalysisRules, DEFAULT_RULES
from src.models.jira_models import Issue
from src.services.pattern_analyzer import categorize
from src.utils.exceptions import JiraClientException
from src.utils.helpers import chunked, top_counts
from src.utils.logger import get_logger, PerformanceTimer

logger = get_logger(__name__)

BATCH_SIZE = 50
BATCH_PAUSE_SECONDS = 0.5
TOP_LABELS = 20
TOP_TERMS = 30
BEST_EXAMPLES = 5
MIN_EXAMPLE_DESCRIPTION = 100

TERM_PATTERN = re.compile(r'\b\w{4,}\b')
STOP_WORDS = frozenset({'the', 'a', 'to', 'of', 'and', 'in', 'is', 'for', 'on', 'with'})

PROJECT_FIELDS = ['summary', 'description', 'status', 'priority', 'labels', 'issuetype', 'created', 'updated']


def extract_terms(text: str) -> List[str]:
    """Lower-cased words of 4+ characters, stop words removed"""
    return [word for word in TERM_PATTERN.findall(text.lower()) if word not in STOP_WORDS]


class ProjectAnalyzer:
    """Loads a project's issues in batches and summarizes them"""

    def __init__(
        self,
        jira_client: JiraClient,
        rules: AnalysisRules = DEFAULT_RULES,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.jira_client = jira_client
        self.rules = rules
        self.sleep = sleep

    def analyze_project(self, issue_keys: List[str], project_key: str) -> Dict[str, Any]:
        logger.info(f"Analyzing {len(issue_keys)} issues from project {project_key}",
                    extra={'project_key': project_key})

        with PerformanceTimer(logger, "project analysis", project_key=project_key):
            issues = self.load_all_issues(issue_keys)
            return self.perform_analysis(issues, project_key)

    def load_all_issues(self, issue_keys: List[str]) -> List[Issue]:
        """
        Fetch issues ``key in (...)`` in batches of 50

        A failed batch is logged and skipped; the remaining batches still load.
        """
        issues: List[Issue] = []
        batches = chunked(list(dict.fromkeys(issue_keys)), BATCH_SIZE)

        for index, batch in enumerate(batches):
            jql = f"key in ({','.join(batch)})"

            try:
                loaded, _ = self.jira_client.search_issues(
                    jql, max_results=BATCH_SIZE, fields=PROJECT_FIELDS
                )
                issues.extend(loaded)
                logger.info(f"Loaded {len(issues)}/{len(issue_keys)} issues")
            except JiraClientException as e:
                logger.error(f"Error loading batch {index + 1}/{len(batches)}: {e}")

            if index < len(batches) - 1:
                self.sleep(BATCH_PAUSE_SECONDS)

        return issues

    def perform_analysis(self, issues: List[Issue], project_key: str) -> Dict[str, Any]:
        """Category/priority/status counts, top labels, common terms and best examples"""
        categories: Dict[str, int] = {}
        priorities: Dict[str, int] = {}
        statuses: Dict[str, int] = {}
        labels: Dict[str, int] = {}
        terms: Counter = Counter()

        for issue in issues:
            category = categorize(issue, self.rules).value
            categories[category] = categories.get(category, 0) + 1
            priorities[issue.priority] = priorities.get(issue.priority, 0) + 1
            statuses[issue.status] = statuses.get(issue.status, 0) + 1

            for label in issue.labels:
                labels[label] = labels.get(label, 0) + 1

            terms.update(extract_terms(f"{issue.summary} {issue.description}"))

        return {
            'projectKey': project_key,
            'totalIssues': len(issues),
            'categories': categories,
            'priorities': priorities,
            'statuses': statuses,
            'topLabels': [label for label, _ in top_counts(labels, TOP_LABELS)],
            'commonTerms': [{'term': term, 'count': count} for term, count in terms.most_common(TOP_TERMS)],
            'bestExamples': self.find_best_examples(issues)
        }

    def find_best_examples(self, issues: List[Issue]) -> List[Dict[str, Any]]:
        """Issues with the longest descriptions (over 100 characters)"""
        detailed = [issue for issue in issues if len(issue.description) > MIN_EXAMPLE_DESCRIPTION]
        detailed.sort(key=lambda issue: len(issue.description), reverse=True)

        return [
            {
                'key': issue.key,
                'summary': issue.summary,
                'category': categorize(issue, self.rules).value,
                'priority': issue.priority,
                'status': issue.status
            }
            for issue in detailed[:BEST_EXAMPLES]
        ]
