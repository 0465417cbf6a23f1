# ==============================================
# Built-in category templates (fallback when nothing is stored)
# ==============================================

from typing import Dict

from src.models.pattern_models import Category, Template

_GOAL = "🎯 **Goal:** {{goal}}\n\n"
_TASKS = "📌 **What to do:**\n\n{{tasks}}\n\n"
_CRITERIA = "✅ **Acceptance criteria:**\n\n{{acceptance_criteria}}\n\n"
_FOOTER = "🏷️ **Priority:** {{priority}}\n\n👥 **Assignee:** {{assignee}}"


def _skeleton(extra_section: str = "") -> str:
    return _GOAL + _TASKS + _CRITERIA + extra_section + _FOOTER


def default_templates() -> Dict[str, Template]:
    """Fresh copies of the built-in templates keyed by category name"""
    return {
        Category.DEVOPS.value: Template(
            name=Category.DEVOPS.value,
            priority="Medium",
            labels=["devops", "infrastructure"],
            assignee_rule="devops-team",
            description_skeleton=_skeleton()
        ),
        Category.ANALYTICS.value: Template(
            name=Category.ANALYTICS.value,
            priority="High",
            labels=["analytics", "data"],
            assignee_rule="analytics-team",
            description_skeleton=_skeleton("📊 **Metrics to track:**\n\n{{metrics}}\n\n")
        ),
        Category.BACKEND.value: Template(
            name=Category.BACKEND.value,
            priority="Medium",
            labels=["backend", "development"],
            assignee_rule="backend-team",
            description_skeleton=_skeleton("🔧 **Technical requirements:**\n\n{{technical_requirements}}\n\n")
        ),
        Category.FRONTEND.value: Template(
            name=Category.FRONTEND.value,
            priority="Medium",
            labels=["frontend", "ui", "ux"],
            assignee_rule="frontend-team",
            description_skeleton=_skeleton("🎨 **UI/UX requirements:**\n\n{{ui_requirements}}\n\n")
        ),
        Category.INFRASTRUCTURE.value: Template(
            name=Category.INFRASTRUCTURE.value,
            priority="High",
            labels=["infrastructure", "system"],
            assignee_rule="infrastructure-team",
            description_skeleton=_skeleton(
                "🛠️ **Infrastructure requirements:**\n\n{{infrastructure_requirements}}\n\n"
            )
        ),
    }


# assignee rule -> email used when a task is created without an explicit assignee
DEFAULT_ASSIGNEES: Dict[str, str] = {
    "devops-team": "user@example.com",
    "analytics-team": "user@example.com",
    "backend-team": "user@example.com",
    "frontend-team": "user@example.com",
    "infrastructure-team": "user@example.com",
}
