# ==============================================
# Historical pattern analysis: categorization, quality scoring, aggregation
# ==============================================

"""
Pure functions over in-memory Issue collections.

Nothing here performs I/O; callers fetch issues and pass an AnalysisRules
object explicitly (DEFAULT_RULES when omitted).

Known limitation: categorization is a coarse keyword heuristic. Overlapping
keywords are resolved purely by rule order (e.g. "dashboard" wins over "ui"
because Analytics is checked before Frontend).
"""

from typing import Iterable, List, Sequence

from src.config.analysis_rules import AnalysisRules, DEFAULT_RULES
from src.models.jira_models import Issue
from src.models.pattern_models import AnalyzedIssue, Category, PatternSet, QualityAssessment

# Score weights
DESCRIPTION_PRESENT = 20
DESCRIPTION_OVER_100 = 10
DESCRIPTION_OVER_500 = 10
HAS_LABEL = 10
HAS_THREE_LABELS = 10
WELL_STRUCTURED = 15
ACCEPTANCE_CRITERIA = 15
TECHNICAL_DETAILS = 10
MAX_SCORE = 100


def categorize(issue: Issue, rules: AnalysisRules = DEFAULT_RULES) -> Category:
    """
    Assign exactly one category to an issue

    The first rule whose keywords appear in summary + description, or whose
    label keywords equal one of the issue's labels, wins. Falls back to
    ``rules.default_category``.
    """
    return categorize_text(f"{issue.summary} {issue.description}", issue.labels, rules)


def categorize_text(
    text: str,
    labels: Sequence[str] = (),
    rules: AnalysisRules = DEFAULT_RULES
) -> Category:
    """Categorize free text (and optional labels) with the ordered rule list"""
    text = text.lower()
    labels = tuple(label.lower() for label in labels)

    for rule in rules.category_rules:
        if rule.matches(text, labels):
            return rule.category

    return rules.default_category


def _contains_any(text: str, markers: Iterable[str]) -> bool:
    return any(marker in text for marker in markers)


def is_well_structured(description: str, rules: AnalysisRules = DEFAULT_RULES) -> bool:
    return _contains_any(description.lower(), rules.structure_markers)


def has_acceptance_criteria(description: str, rules: AnalysisRules = DEFAULT_RULES) -> bool:
    return _contains_any(description.lower(), rules.acceptance_markers)


def has_technical_details(description: str, rules: AnalysisRules = DEFAULT_RULES) -> bool:
    return _contains_any(description.lower(), rules.technical_markers)


def assess_quality(issue: Issue, rules: AnalysisRules = DEFAULT_RULES) -> QualityAssessment:
    """
    Score an issue's completeness on a 0-100 scale

    +20 description present, +10 longer than 100 chars, +10 longer than 500,
    +10 at least one label, +10 at least three labels, +15 structural
    markers, +15 acceptance-criteria markers, +10 technical terms; capped at
    100.
    """
    description = issue.description
    length = len(description)
    label_count = len(dict.fromkeys(issue.labels))

    structured = is_well_structured(description, rules)
    acceptance = has_acceptance_criteria(description, rules)
    technical = has_technical_details(description, rules)

    score = 0
    if length > 0:
        score += DESCRIPTION_PRESENT
    if length > 100:
        score += DESCRIPTION_OVER_100
    if length > 500:
        score += DESCRIPTION_OVER_500
    if label_count >= 1:
        score += HAS_LABEL
    if label_count >= 3:
        score += HAS_THREE_LABELS
    if structured:
        score += WELL_STRUCTURED
    if acceptance:
        score += ACCEPTANCE_CRITERIA
    if technical:
        score += TECHNICAL_DETAILS

    return QualityAssessment(
        has_description=length > 0,
        description_length=length,
        has_labels=label_count > 0,
        label_count=label_count,
        summary_length=len(issue.summary),
        is_well_structured=structured,
        has_acceptance_criteria=acceptance,
        has_technical_details=technical,
        quality_score=min(score, MAX_SCORE)
    )


def analyze_issue(issue: Issue, rules: AnalysisRules = DEFAULT_RULES) -> AnalyzedIssue:
    """Attach category and quality assessment to an issue"""
    return AnalyzedIssue(
        issue=issue,
        category=categorize(issue, rules),
        quality=assess_quality(issue, rules)
    )


def analyze_issues(issues: Sequence[Issue], rules: AnalysisRules = DEFAULT_RULES) -> List[AnalyzedIssue]:
    return [analyze_issue(issue, rules) for issue in issues]


def aggregate(issues: Sequence[AnalyzedIssue], rules: AnalysisRules = DEFAULT_RULES) -> PatternSet:
    """
    Single pass over analyzed issues building a PatternSet

    Every issue adds one category count, one priority count, one count per
    label, one assignee count unless unassigned, and lands in exactly one
    quality bucket. Count mappings keep first-seen order.
    """
    patterns = PatternSet()

    for analyzed in issues:
        issue = analyzed.issue
        category = analyzed.category.value

        patterns.categories[category] = patterns.categories.get(category, 0) + 1
        patterns.priorities[issue.priority] = patterns.priorities.get(issue.priority, 0) + 1

        for label in dict.fromkeys(issue.labels):
            patterns.labels[label] = patterns.labels.get(label, 0) + 1

        if issue.is_assigned:
            patterns.assignees[issue.assignee] = patterns.assignees.get(issue.assignee, 0) + 1

        score = analyzed.quality_score
        if score >= rules.high_quality_threshold:
            patterns.quality.high.append(analyzed)
        elif score >= rules.medium_quality_threshold:
            patterns.quality.medium.append(analyzed)
        else:
            patterns.quality.low.append(analyzed)

    return patterns
