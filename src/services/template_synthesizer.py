# ==============================================
# Template synthesis from high-quality historical issues
# ==============================================

import math
from collections import Counter
from typing import Dict, List, Optional, Sequence

from src.config.analysis_rules import AnalysisRules, DEFAULT_RULES
from src.models.pattern_models import AnalyzedIssue, Category, DescriptionStructure, Template
from src.utils.helpers import round_half_up

# Skeleton sections in output order
GOAL_SECTION = "🎯 **Goal:** {{goal}}\n\n"
TASKS_SECTION = "📌 **What to do:**\n\n{{tasks}}\n\n"
CRITERIA_SECTION = "✅ **Acceptance criteria:**\n\n{{acceptance_criteria}}\n\n"
TECHNICAL_SECTION = "🔧 **Technical requirements:**\n\n{{technical_requirements}}\n\n"
PRIORITY_SECTION = "🏷️ **Priority:** {{priority}}\n\n"
ASSIGNEE_SECTION = "👥 **Assignee:** {{assignee}}"


def _mode(values: Sequence[str]) -> Optional[str]:
    """Most frequent value; ties go to the value seen first"""
    if not values:
        return None
    # Counter keeps insertion order and most_common() is a stable sort
    return Counter(values).most_common(1)[0][0]


def common_labels(issues: Sequence[AnalyzedIssue], rules: AnalysisRules = DEFAULT_RULES) -> List[str]:
    """
    Labels present on at least half of the issues

    Ordered by count descending, ties by first-seen order.
    """
    counts = Counter(label for analyzed in issues for label in dict.fromkeys(analyzed.issue.labels))
    threshold = math.ceil(len(issues) * rules.common_label_ratio)
    return [label for label, count in counts.most_common() if count >= threshold]


def mode_priority(issues: Sequence[AnalyzedIssue]) -> Optional[str]:
    return _mode([analyzed.issue.priority for analyzed in issues])


def mode_assignee(issues: Sequence[AnalyzedIssue], rules: AnalysisRules = DEFAULT_RULES) -> str:
    """Most frequent real assignee, or the auto-assign sentinel"""
    assignees = [analyzed.issue.assignee for analyzed in issues if analyzed.issue.is_assigned]
    return _mode(assignees) or rules.auto_assign_sentinel


def extract_structure(description: str, rules: AnalysisRules = DEFAULT_RULES) -> DescriptionStructure:
    """Which sections a description contains, scanning line by line"""
    markers = rules.section_markers
    structure = DescriptionStructure()

    for line in description.split('\n'):
        lower = line.lower()
        if any(m in lower for m in markers.goal):
            structure.has_goal = True
        if any(m in lower for m in markers.tasks):
            structure.has_tasks = True
        if any(m in lower for m in markers.criteria):
            structure.has_criteria = True
        if any(m in lower for m in markers.technical):
            structure.has_technical = True

    return structure


def description_skeleton(issues: Sequence[AnalyzedIssue], rules: AnalysisRules = DEFAULT_RULES) -> str:
    """
    Build a description skeleton from the sections most issues share

    A section is kept when a strict majority of issues contain it. Priority
    and assignee sections are always appended.
    """
    structures = [extract_structure(analyzed.issue.description, rules) for analyzed in issues]
    half = len(structures) * 0.5

    def majority(attr: str) -> bool:
        return sum(1 for s in structures if getattr(s, attr)) > half

    skeleton = ""
    if majority('has_goal'):
        skeleton += GOAL_SECTION
    if majority('has_tasks'):
        skeleton += TASKS_SECTION
    if majority('has_criteria'):
        skeleton += CRITERIA_SECTION
    if majority('has_technical'):
        skeleton += TECHNICAL_SECTION

    return skeleton + PRIORITY_SECTION + ASSIGNEE_SECTION


def build_template(
    category: Category,
    issues: Sequence[AnalyzedIssue],
    rules: AnalysisRules = DEFAULT_RULES
) -> Template:
    """Compose a Template for one category from its (high-quality) issues"""
    if not issues:
        raise ValueError(f"Cannot build a template for {category.value} from zero issues")

    mean_score = sum(analyzed.quality_score for analyzed in issues) / len(issues)

    return Template(
        name=category.value,
        priority=mode_priority(issues),
        labels=common_labels(issues, rules),
        assignee_rule=mode_assignee(issues, rules),
        description_skeleton=description_skeleton(issues, rules),
        based_on=len(issues),
        quality_score=round_half_up(mean_score)
    )


def synthesize_templates(
    issues: Sequence[AnalyzedIssue],
    rules: AnalysisRules = DEFAULT_RULES
) -> Dict[str, Template]:
    """
    One template per category that has at least one high-quality issue

    Only issues scoring at or above the high-quality threshold feed the
    template. Result is keyed by category name in first-seen order.
    """
    templates: Dict[str, Template] = {}
    categories = list(dict.fromkeys(analyzed.category for analyzed in issues))

    for category in categories:
        high_quality = [
            analyzed for analyzed in issues
            if analyzed.category == category and analyzed.quality_score >= rules.high_quality_threshold
        ]
        if high_quality:
            templates[category.value] = build_template(category, high_quality, rules)

    return templates
