from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.models.pattern_models import Category


def parse_category(value: str) -> str:
    """Validate a category name (English or legacy Russian) and normalize it"""
    if not isinstance(value, str):
        raise ValueError("category must be a string")
    return Category.parse(value).value


def validate_absolute_url(value: str) -> str:
    """Require an absolute http(s) URL"""
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValueError("url must be a valid absolute http(s) URL")
    return value


class ApiResponse(BaseModel):
    """Standard response envelope"""
    success: bool = True
    message: Optional[str] = None
    data: Any = None


class GenerateTaskRequest(BaseModel):
    """
    Input for AI task generation

    Validation Rules:
    - description: 10..500 characters
    - category: DevOps, Analytics, Backend, Frontend or Infrastructure
    """
    description: str = Field(..., min_length=10, max_length=500, description="Short task description")
    category: str = Field(..., description="Task category")

    @field_validator('description')
    @classmethod
    def strip_description(cls, v: str) -> str:
        if len(v.strip()) < 10:
            raise ValueError("description must contain at least 10 non-blank characters")
        return v.strip()

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: str) -> str:
        return parse_category(v)


class CreateTaskRequest(GenerateTaskRequest):
    """Input for POST /api/create-task"""
    assignee: Optional[EmailStr] = Field(default=None, description="Assignee email")


class GenerateVariantsRequest(GenerateTaskRequest):
    count: int = Field(default=3, ge=2, le=5, description="Number of variants")


class GenerateFromUrlRequest(BaseModel):
    url: str = Field(..., description="Jira issue URL")
    description: Optional[str] = Field(default=None, max_length=500, description="Extra context")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        return validate_absolute_url(v)


class EnhanceIssueRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    issue_key: str = Field(..., alias='issueKey', pattern=r'^[A-Z][A-Z0-9]*-\d+$', description="Issue key, e.g. PROJ-123")
