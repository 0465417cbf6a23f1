# ==============================================
# Keyword and marker rules for historical issue analysis
# ==============================================

from dataclasses import dataclass, field
from typing import Tuple

from src.models.pattern_models import Category


@dataclass(frozen=True)
class CategoryRule:
    """One entry of the ordered categorization rule list"""
    category: Category
    text_keywords: Tuple[str, ...]
    label_keywords: Tuple[str, ...]

    def matches(self, text: str, labels: Tuple[str, ...]) -> bool:
        if any(keyword in text for keyword in self.text_keywords):
            return True
        return any(label in self.label_keywords for label in labels)


@dataclass(frozen=True)
class SectionMarkers:
    """Line markers used to detect description sections (English + Russian)"""
    goal: Tuple[str, ...] = ('goal', 'цель')
    tasks: Tuple[str, ...] = ('task', 'what to do', 'задача', 'что нужно')
    criteria: Tuple[str, ...] = ('criteria', 'критерии')
    technical: Tuple[str, ...] = ('technical', 'технические')


@dataclass(frozen=True)
class AnalysisRules:
    """
    Rules for categorization, quality scoring and skeleton detection

    Evaluation order of ``category_rules`` is significant: the first matching
    rule wins and ``default_category`` is used when nothing matches.
    """
    category_rules: Tuple[CategoryRule, ...]
    default_category: Category = Category.BACKEND

    structure_markers: Tuple[str, ...] = (
        'goal:', 'цель:', 'task:', 'задача:',
        'criteria:', 'критерии:', 'requirements:', 'требования:',
        'steps:', 'шаги:', 'result:', 'результат:'
    )
    acceptance_markers: Tuple[str, ...] = (
        'acceptance criteria', 'критерии готовности',
        'критерии приемки', 'definition of done',
        'done when', 'готово когда'
    )
    technical_markers: Tuple[str, ...] = (
        'api', 'database', 'server', 'config',
        'technical', 'технические', 'architecture', 'архитектура',
        'performance', 'производительность'
    )
    section_markers: SectionMarkers = field(default_factory=SectionMarkers)

    # Quality bucket and template thresholds
    high_quality_threshold: int = 80
    medium_quality_threshold: int = 60
    common_label_ratio: float = 0.5
    unassigned_sentinel: str = "Unassigned"
    auto_assign_sentinel: str = "auto-assign"


DEFAULT_RULES = AnalysisRules(
    category_rules=(
        CategoryRule(
            Category.DEVOPS,
            text_keywords=('devops', 'ci/cd', 'deploy', 'monitoring'),
            label_keywords=('devops', 'ci/cd', 'ci-cd', 'deploy', 'deployment', 'monitoring'),
        ),
        CategoryRule(
            Category.ANALYTICS,
            text_keywords=('analytics', 'dashboard', 'metrics', 'report'),
            label_keywords=('analytics', 'dashboard', 'metrics', 'report', 'reporting'),
        ),
        CategoryRule(
            Category.BACKEND,
            text_keywords=('backend', 'api', 'server', 'database'),
            label_keywords=('backend', 'api', 'server', 'database'),
        ),
        CategoryRule(
            Category.FRONTEND,
            text_keywords=('frontend', 'ui', 'ux', 'interface'),
            label_keywords=('frontend', 'ui', 'ux', 'interface'),
        ),
        CategoryRule(
            Category.INFRASTRUCTURE,
            text_keywords=('infrastructure', 'system', 'security'),
            label_keywords=('infrastructure', 'system', 'security'),
        ),
    )
)
