from fastapi import APIRouter, Depends, Path

from src.models.historical_models import (
    AnalyzeIssuesRequest,
    AnalyzePatternsRequest,
    CreateFromHistoryRequest,
    ParseHistoricalRequest
)
from src.models.task_api_models import ApiResponse
from src.routers.dependencies import (
    get_historical_service,
    get_history_generation_service,
    get_offline_historical_service
)
from src.services.historical_service import HistoricalDataService
from src.utils.logger import get_logger
from src.utils.rate_limiter import generation_limit, historical_limit

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/parse",
    response_model=ApiResponse,
    summary="Fetch and analyze historical issues",
    dependencies=[Depends(historical_limit)]
)
def parse_historical(
    request: ParseHistoricalRequest,
    service: HistoricalDataService = Depends(get_historical_service)
) -> ApiResponse:
    """
    Fetch one page of issues, analyze each one and synthesize templates

    Returns each issue with its category and quality, the aggregated
    patterns and the templates saved to the template store.
    """
    batch = service.parse_historical_tasks(
        project_key=request.project_key,
        max_results=request.max_results,
        start_at=request.start_at,
        jql=request.jql,
        fields=request.fields
    )
    patterns = service.analyze_patterns(batch.issues)
    templates = service.create_templates(batch.issues)

    return ApiResponse(
        message=f"Parsed {len(batch.issues)} historical tasks",
        data={
            'total': batch.total,
            'hasMore': batch.has_more,
            'issues': [analyzed.to_dict() for analyzed in batch.issues],
            'patterns': patterns.to_dict(),
            'templates': {key: template.to_dict() for key, template in templates.items()}
        }
    )


@router.post(
    "/analyze-patterns",
    response_model=ApiResponse,
    summary="Patterns, templates and recommendations for a project",
    dependencies=[Depends(historical_limit)]
)
def analyze_patterns(
    request: AnalyzePatternsRequest,
    service: HistoricalDataService = Depends(get_historical_service)
) -> ApiResponse:
    batch = service.parse_historical_tasks(project_key=request.project_key, max_results=request.max_results)
    return ApiResponse(
        message="Pattern analysis complete",
        data=service.analysis_payload(batch.issues)
    )


@router.post(
    "/create-from-history",
    response_model=ApiResponse,
    summary="Generate a task using similar historical issues as context",
    dependencies=[Depends(generation_limit)]
)
def create_from_history(
    request: CreateFromHistoryRequest,
    service: HistoricalDataService = Depends(get_history_generation_service)
) -> ApiResponse:
    content = service.create_task_from_history(
        request.description,
        request.category,
        use_historical_data=request.use_historical_data,
        project_key=request.project_key,
        max_historical_tasks=request.max_historical_tasks
    )
    return ApiResponse(message="Task generated", data=content)


@router.get(
    "/stats/{project_key}",
    response_model=ApiResponse,
    summary="Category, priority, label and quality statistics",
    dependencies=[Depends(historical_limit)]
)
def stats(
    project_key: str = Path(..., pattern=r'^[A-Z][A-Z0-9]*$'),
    service: HistoricalDataService = Depends(get_historical_service)
) -> ApiResponse:
    return ApiResponse(data=service.get_stats(project_key))


@router.post(
    "/analyze-issues",
    response_model=ApiResponse,
    summary="Analyze issues supplied by the caller",
    dependencies=[Depends(historical_limit)]
)
def analyze_issues(
    request: AnalyzeIssuesRequest,
    service: HistoricalDataService = Depends(get_offline_historical_service)
) -> ApiResponse:
    # Issues scraped by the browser extension; Jira is not contacted
    analyzed = service.analyze_issue_records(request.issues)
    return ApiResponse(
        message=f"Analyzed {len(analyzed)} issues",
        data=service.analysis_payload(analyzed)
    )
