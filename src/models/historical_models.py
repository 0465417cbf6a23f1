import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.task_api_models import GenerateTaskRequest

ISSUE_KEY_RE = re.compile(r'^[A-Z][A-Z0-9]*-\d+$')


class ParseHistoricalRequest(BaseModel):
    """
    Input for POST /api/historical/parse

    Validation Rules:
    - maxResults: 1..1000 (default 100)
    - startAt: >= 0
    - jql, when given, replaces the default ``project = <projectKey>`` query
    """
    model_config = ConfigDict(populate_by_name=True)

    project_key: Optional[str] = Field(default=None, alias='projectKey')
    max_results: int = Field(default=100, alias='maxResults', ge=1, le=1000)
    start_at: int = Field(default=0, alias='startAt', ge=0)
    jql: Optional[str] = None
    fields: Optional[List[str]] = None


class AnalyzePatternsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_key: Optional[str] = Field(default=None, alias='projectKey')
    max_results: int = Field(default=100, alias='maxResults', ge=10, le=500)


class CreateFromHistoryRequest(GenerateTaskRequest):
    model_config = ConfigDict(populate_by_name=True)

    use_historical_data: bool = Field(default=True, alias='useHistoricalData')
    project_key: Optional[str] = Field(default=None, alias='projectKey')
    max_historical_tasks: int = Field(default=20, alias='maxHistoricalTasks', ge=5, le=100)


class AnalyzeIssuesRequest(BaseModel):
    """Issues collected by the browser extension, analyzed without Jira access"""
    issues: List[Dict[str, Any]] = Field(..., min_length=1, max_length=1000)


class FullAnalysisRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_key: str = Field(..., alias='projectKey', min_length=1)
    issue_keys: List[str] = Field(..., alias='issueKeys', min_length=1)
    source: Optional[str] = None
    timestamp: Optional[str] = None

    @field_validator('issue_keys')
    @classmethod
    def validate_issue_keys(cls, v: List[str]) -> List[str]:
        keys = [key.strip().upper() for key in v if key and key.strip()]
        invalid = [key for key in keys if not ISSUE_KEY_RE.match(key)]
        if invalid:
            raise ValueError(f"Invalid issue keys: {', '.join(invalid[:5])}")
        return keys
