from fastapi import APIRouter, Depends, Path, status

from src.models.jira_url_models import AnalyzeUrlRequest, CloneTaskRequest, CreateFromUrlRequest
from src.models.task_api_models import ApiResponse
from src.routers.dependencies import get_jira_lookup_service, get_jira_url_service
from src.services.jira_url_service import JiraUrlService
from src.utils.logger import get_logger
from src.utils.rate_limiter import creation_limit, url_analysis_limit

logger = get_logger(__name__)

router = APIRouter()

ISSUE_KEY_PATH = r'^[A-Z][A-Z0-9]*-\d+$'
PROJECT_KEY_PATH = r'^[A-Z][A-Z0-9]*$'


@router.post(
    "/analyze-url",
    response_model=ApiResponse,
    summary="Parse a Jira URL and look up its issue and project",
    dependencies=[Depends(url_analysis_limit)]
)
def analyze_url(
    request: AnalyzeUrlRequest,
    service: JiraUrlService = Depends(get_jira_lookup_service)
) -> ApiResponse:
    return ApiResponse(data=service.analyze_url(request.url))


@router.post(
    "/create-from-url",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new task based on an existing issue",
    dependencies=[Depends(creation_limit)]
)
def create_from_url(
    request: CreateFromUrlRequest,
    service: JiraUrlService = Depends(get_jira_url_service)
) -> ApiResponse:
    result = service.create_from_url(
        request.url,
        assignee=request.assignee,
        additional_info=request.additional_info,
        use_ai=request.use_ai,
        target_project=request.target_project
    )
    return ApiResponse(message="Task created from URL", data=result)


@router.post(
    "/clone-task",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Clone an issue into another project",
    dependencies=[Depends(creation_limit)]
)
def clone_task(
    request: CloneTaskRequest,
    service: JiraUrlService = Depends(get_jira_lookup_service)
) -> ApiResponse:
    result = service.clone_task(
        request.source_url,
        request.target_project,
        target_issue_type=request.target_issue_type,
        assignee=request.assignee,
        additional_info=request.additional_info
    )
    return ApiResponse(message=f"Task cloned into {request.target_project}", data=result)


@router.get("/issue/{issue_key}", response_model=ApiResponse, summary="Issue details")
def issue_info(
    issue_key: str = Path(..., pattern=ISSUE_KEY_PATH),
    service: JiraUrlService = Depends(get_jira_lookup_service)
) -> ApiResponse:
    return ApiResponse(data=service.get_issue_info(issue_key))


@router.get("/project/{project_key}", response_model=ApiResponse, summary="Project details and issue types")
def project_info(
    project_key: str = Path(..., pattern=PROJECT_KEY_PATH),
    service: JiraUrlService = Depends(get_jira_lookup_service)
) -> ApiResponse:
    return ApiResponse(data=service.get_project_info(project_key))
