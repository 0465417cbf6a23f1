import time

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from src.config.settings import get_config
from src.routers.historical_api import router as historical_router
from src.routers.jira_url_api import router as jira_url_router
from src.routers.project_analyzer_api import router as project_analyzer_router
from src.routers.simple_api import router as simple_router
from src.routers.task_api import router as task_router
from src.utils.logger import (
    clear_correlation_id,
    generate_correlation_id,
    get_logger,
    set_correlation_id
)
from src.utils.rate_limiter import api_limit
from src.utils.validation_exception_handler import add_exception_handlers

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

app = FastAPI(
    title="Jira Task Automation API",
    version="1.0.0",
    description="Generate, enhance and analyze Jira tasks with OpenAI"
)

add_exception_handlers(app)


@app.middleware("http")
async def request_logger(request: Request, call_next):
    """Tag each request with a correlation id and log its outcome"""
    correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id('req')
    set_correlation_id(correlation_id)
    start = time.perf_counter()

    try:
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        logger.info(
            f"{request.method} {request.url.path} {response.status_code} - {duration_ms}ms",
            extra={'duration_ms': duration_ms}
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
    finally:
        clear_correlation_id()


# --- Include all routers ---

api_dependencies = [Depends(api_limit)]

app.include_router(task_router, prefix="/api", tags=["Tasks"], dependencies=api_dependencies)
app.include_router(simple_router, prefix="/api/simple", tags=["Simple mode"], dependencies=api_dependencies)
app.include_router(jira_url_router, prefix="/api/jira", tags=["Jira URL"], dependencies=api_dependencies)
app.include_router(historical_router, prefix="/api/historical", tags=["Historical analysis"],
                   dependencies=api_dependencies)
app.include_router(project_analyzer_router, prefix="/api/project-analyzer", tags=["Project analyzer"],
                   dependencies=api_dependencies)


@app.get("/")
async def root():
    return {
        'message': 'Jira Task Automation API',
        'version': app.version,
        'endpoints': {
            'createTask': 'POST /api/create-task',
            'categories': 'GET /api/categories',
            'health': 'GET /api/health',
            'projectInfo': 'GET /api/project-info',
            'enhanceIssue': 'POST /api/enhance-issue',
            'simpleGenerate': 'POST /api/simple/generate',
            'simpleGenerateFromUrl': 'POST /api/simple/generate-from-url',
            'simpleGenerateVariants': 'POST /api/simple/generate-variants',
            'simpleCategories': 'GET /api/simple/categories',
            'simpleHealth': 'GET /api/simple/health',
            'analyzeUrl': 'POST /api/jira/analyze-url',
            'createFromUrl': 'POST /api/jira/create-from-url',
            'cloneTask': 'POST /api/jira/clone-task',
            'issueInfo': 'GET /api/jira/issue/{issue_key}',
            'projectDetails': 'GET /api/jira/project/{project_key}',
            'historicalParse': 'POST /api/historical/parse',
            'historicalAnalyzePatterns': 'POST /api/historical/analyze-patterns',
            'historicalCreateFromHistory': 'POST /api/historical/create-from-history',
            'historicalStats': 'GET /api/historical/stats/{project_key}',
            'historicalAnalyzeIssues': 'POST /api/historical/analyze-issues',
            'fullAnalysis': 'POST /api/project-analyzer/full-analysis'
        }
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    logger.info(f"Starting server on {config.server.host}:{config.server.port} ({config.server.environment})")
    uvicorn.run("main:app", host=config.server.host, port=config.server.port,
                reload=config.server.is_development)
