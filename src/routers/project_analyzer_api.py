from fastapi import APIRouter, Depends

from src.models.historical_models import FullAnalysisRequest
from src.models.task_api_models import ApiResponse
from src.routers.dependencies import get_project_analyzer
from src.services.project_analyzer import ProjectAnalyzer
from src.utils.logger import get_logger
from src.utils.rate_limiter import historical_limit

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/full-analysis",
    response_model=ApiResponse,
    summary="Analyze every issue of a project",
    dependencies=[Depends(historical_limit)]
)
def full_analysis(
    request: FullAnalysisRequest,
    analyzer: ProjectAnalyzer = Depends(get_project_analyzer)
) -> ApiResponse:
    """
    Load the listed issues in batches and summarize categories, priorities,
    statuses, labels, common terms and the most detailed examples.
    """
    logger.info(
        f"Full analysis requested for {request.project_key} (source={request.source or 'api'})",
        extra={'project_key': request.project_key}
    )

    analysis = analyzer.analyze_project(request.issue_keys, request.project_key)

    return ApiResponse(
        message=f"Analyzed {analysis['totalIssues']} of {len(request.issue_keys)} issues",
        data=analysis
    )
