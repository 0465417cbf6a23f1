from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from src.clients.openai_client import OpenAIClient
from src.models.pattern_models import Category
from src.models.task_api_models import (
    ApiResponse,
    GenerateFromUrlRequest,
    GenerateTaskRequest,
    GenerateVariantsRequest
)
from src.routers.dependencies import (
    get_optional_openai_client,
    get_simple_generation_service,
    get_simple_url_service,
    get_template_store
)
from src.services.jira_url_service import JiraUrlService
from src.services.task_generation_service import TaskGenerationService
from src.services.template_store import TemplateStore
from src.utils.logger import get_logger
from src.utils.rate_limiter import generation_limit

logger = get_logger(__name__)

# Copy/paste mode: generated tasks are returned to the caller, nothing is written to Jira
router = APIRouter()


@router.post(
    "/generate",
    response_model=ApiResponse,
    summary="Generate a task for copy/paste",
    dependencies=[Depends(generation_limit)]
)
def generate(
    request: GenerateTaskRequest,
    service: TaskGenerationService = Depends(get_simple_generation_service)
) -> ApiResponse:
    content = service.generate(request.description, request.category)
    return ApiResponse(message="Task generated successfully", data=content)


@router.post(
    "/generate-from-url",
    response_model=ApiResponse,
    summary="Generate a task for the issue a Jira URL points to",
    dependencies=[Depends(generation_limit)]
)
def generate_from_url(
    request: GenerateFromUrlRequest,
    service: JiraUrlService = Depends(get_simple_url_service)
) -> ApiResponse:
    content = service.generate_from_url(request.url, request.description)
    return ApiResponse(message="Task generated from URL", data=content)


@router.post(
    "/generate-variants",
    response_model=ApiResponse,
    summary="Generate several alternative tasks",
    dependencies=[Depends(generation_limit)]
)
def generate_variants(
    request: GenerateVariantsRequest,
    service: TaskGenerationService = Depends(get_simple_generation_service)
) -> ApiResponse:
    variants = service.generate_variants(request.description, request.category, request.count)
    return ApiResponse(
        message=f"Generated {len(variants)} variants",
        data={'variants': variants, 'count': len(variants)}
    )


@router.get("/categories", response_model=ApiResponse, summary="Available categories")
def categories(template_store: TemplateStore = Depends(get_template_store)) -> ApiResponse:
    data = []
    for category in Category:
        template = template_store.get_template(category.value)
        data.append({
            'name': category.value,
            'priority': template.priority,
            'labels': template.labels
        })
    return ApiResponse(data=data)


@router.get("/health", summary="Check that OpenAI is configured")
def health(openai_client: Optional[OpenAIClient] = Depends(get_optional_openai_client)) -> JSONResponse:
    configured = openai_client.check_api_key() if openai_client else False

    return JSONResponse(
        status_code=status.HTTP_200_OK if configured else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            'success': configured,
            'message': 'Simple mode is available' if configured else 'OpenAI API key is not configured',
            'data': {'openai': 'configured' if configured else 'not configured', 'mode': 'simple'}
        }
    )
