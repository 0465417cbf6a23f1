from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from src.clients.jira_client import JiraClient
from src.clients.openai_client import OpenAIClient
from src.models.task_api_models import ApiResponse, CreateTaskRequest, EnhanceIssueRequest
from src.routers.dependencies import (
    get_jira_client,
    get_optional_jira_client,
    get_optional_openai_client,
    get_task_generation_service,
    get_template_store
)
from src.services.task_generation_service import TaskGenerationService
from src.services.template_store import TemplateStore
from src.utils.logger import get_logger
from src.utils.rate_limiter import creation_limit, generation_limit

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/create-task",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a Jira task from a short description",
    dependencies=[Depends(creation_limit)]
)
def create_task(
    request: CreateTaskRequest,
    service: TaskGenerationService = Depends(get_task_generation_service)
) -> ApiResponse:
    """
    Generate task content with OpenAI, fill the category template and create
    the issue in Jira.
    """
    logger.info(f"Create task request: category={request.category}", extra={'category': request.category})

    result = service.create_task(request.description, request.category, request.assignee)

    return ApiResponse(message="Task created successfully", data=result)


@router.get("/categories", response_model=ApiResponse, summary="List category templates")
def get_categories(template_store: TemplateStore = Depends(get_template_store)) -> ApiResponse:
    templates = template_store.all_templates()
    return ApiResponse(data={
        'categories': list(templates.keys()),
        'templates': {key: template.to_dict() for key, template in templates.items()}
    })


@router.get("/health", summary="Check Jira and OpenAI connectivity")
def health(
    jira_client: Optional[JiraClient] = Depends(get_optional_jira_client),
    openai_client: Optional[OpenAIClient] = Depends(get_optional_openai_client)
) -> JSONResponse:
    """200 when both Jira and OpenAI are usable, 503 otherwise"""
    jira_ok = jira_client.test_connection() if jira_client else False
    openai_ok = openai_client.check_api_key() if openai_client else False
    healthy = jira_ok and openai_ok

    if not healthy:
        logger.warning(f"Health check failed: jira={jira_ok}, openai={openai_ok}")

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            'success': healthy,
            'message': 'All services are healthy' if healthy else 'Some services are unavailable',
            'data': {
                'jira': 'connected' if jira_ok else 'disconnected',
                'openai': 'configured' if openai_ok else 'not configured'
            }
        }
    )


@router.get("/project-info", response_model=ApiResponse, summary="Configured project and its issue types")
def project_info(jira_client: JiraClient = Depends(get_jira_client)) -> ApiResponse:
    info = jira_client.get_project_info()
    return ApiResponse(data=info.to_dict())


@router.post(
    "/enhance-issue",
    response_model=ApiResponse,
    summary="Rewrite an existing issue with AI-generated content",
    dependencies=[Depends(generation_limit)]
)
def enhance_issue(
    request: EnhanceIssueRequest,
    service: TaskGenerationService = Depends(get_task_generation_service)
) -> ApiResponse:
    result = service.enhance_issue(request.issue_key)
    return ApiResponse(message=f"Issue {request.issue_key} enhanced", data=result)
