from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.models.task_api_models import validate_absolute_url


class AnalyzeUrlRequest(BaseModel):
    url: str = Field(..., description="Any Jira URL (issue, board, project)")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        return validate_absolute_url(v)


class CreateFromUrlRequest(BaseModel):
    """
    Input for creating a task from an existing issue

    use_ai=False copies the source issue into a plain description instead of
    generating content.
    """
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., description="URL of the source issue")
    target_project: Optional[str] = Field(default=None, alias='targetProject')
    assignee: Optional[EmailStr] = None
    additional_info: Optional[str] = Field(default=None, alias='additionalInfo', max_length=2000)
    use_ai: bool = Field(default=True, alias='useAI')

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        return validate_absolute_url(v)


class CloneTaskRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_url: str = Field(..., alias='sourceUrl')
    target_project: str = Field(..., alias='targetProject', min_length=1)
    target_issue_type: Optional[str] = Field(default=None, alias='targetIssueType')
    assignee: Optional[EmailStr] = None
    additional_info: Optional[str] = Field(default=None, alias='additionalInfo', max_length=2000)

    @field_validator('source_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        return validate_absolute_url(v)
