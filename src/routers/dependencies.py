# ==============================================
# FastAPI dependency providers for clients and services
# ==============================================

from functools import lru_cache
from typing import Optional

from fastapi import Depends

from src.clients.jira_client import JiraClient
from src.clients.openai_client import OpenAIClient
from src.config.settings import Config, get_config
from src.services.historical_service import HistoricalDataService
from src.services.jira_url_service import JiraUrlService
from src.services.project_analyzer import ProjectAnalyzer
from src.services.task_generation_service import TaskGenerationService
from src.services.template_store import InMemoryTemplateStore, JsonFileTemplateStore, TemplateStore
from src.utils.exceptions import ConfigurationException
from src.utils.logger import get_logger

logger = get_logger(__name__)


def get_settings() -> Config:
    return get_config()


@lru_cache(maxsize=None)
def _template_store_for(path: Optional[str]) -> TemplateStore:
    if not path:
        logger.info("TEMPLATE_STORE_PATH is empty, templates are kept in memory")
        return InMemoryTemplateStore()
    return JsonFileTemplateStore(path)


def get_template_store(config: Config = Depends(get_settings)) -> TemplateStore:
    return _template_store_for(config.template_store.path)


def get_jira_client(config: Config = Depends(get_settings)) -> JiraClient:
    """Jira client for endpoints that need Jira; missing credentials -> 503"""
    config.validate_jira()
    return JiraClient(config)


def get_openai_client(config: Config = Depends(get_settings)) -> OpenAIClient:
    config.validate_openai()
    return OpenAIClient(config)


def get_optional_jira_client(config: Config = Depends(get_settings)) -> Optional[JiraClient]:
    """Jira client when configured, else None (health checks)"""
    try:
        config.validate_jira()
    except ConfigurationException as e:
        logger.warning(f"Jira is not configured: {e.message}")
        return None
    return JiraClient(config)


def get_optional_openai_client(config: Config = Depends(get_settings)) -> Optional[OpenAIClient]:
    try:
        config.validate_openai()
    except ConfigurationException as e:
        logger.warning(f"OpenAI is not configured: {e.message}")
        return None
    return OpenAIClient(config)


def get_simple_generation_service(
    openai_client: OpenAIClient = Depends(get_openai_client),
    template_store: TemplateStore = Depends(get_template_store)
) -> TaskGenerationService:
    """Copy/paste mode, no Jira"""
    return TaskGenerationService(openai_client, template_store)


def get_task_generation_service(
    openai_client: OpenAIClient = Depends(get_openai_client),
    template_store: TemplateStore = Depends(get_template_store),
    jira_client: JiraClient = Depends(get_jira_client)
) -> TaskGenerationService:
    return TaskGenerationService(openai_client, template_store, jira_client)


def get_simple_url_service(
    openai_client: OpenAIClient = Depends(get_openai_client),
    template_store: TemplateStore = Depends(get_template_store),
    task_generation: TaskGenerationService = Depends(get_simple_generation_service)
) -> JiraUrlService:
    return JiraUrlService(None, openai_client, template_store, task_generation)


def get_jira_lookup_service(
    jira_client: JiraClient = Depends(get_jira_client),
    template_store: TemplateStore = Depends(get_template_store)
) -> JiraUrlService:
    """URL analysis and issue/project lookups (no OpenAI needed)"""
    return JiraUrlService(jira_client, None, template_store, None)


def get_jira_url_service(
    jira_client: JiraClient = Depends(get_jira_client),
    openai_client: OpenAIClient = Depends(get_openai_client),
    template_store: TemplateStore = Depends(get_template_store),
    task_generation: TaskGenerationService = Depends(get_task_generation_service)
) -> JiraUrlService:
    return JiraUrlService(jira_client, openai_client, template_store, task_generation)


def get_historical_service(
    config: Config = Depends(get_settings),
    jira_client: JiraClient = Depends(get_jira_client),
    template_store: TemplateStore = Depends(get_template_store)
) -> HistoricalDataService:
    return HistoricalDataService(config, jira_client, None, template_store)


def get_history_generation_service(
    config: Config = Depends(get_settings),
    jira_client: JiraClient = Depends(get_jira_client),
    openai_client: OpenAIClient = Depends(get_openai_client),
    template_store: TemplateStore = Depends(get_template_store)
) -> HistoricalDataService:
    return HistoricalDataService(config, jira_client, openai_client, template_store)


def get_offline_historical_service(
    config: Config = Depends(get_settings),
    template_store: TemplateStore = Depends(get_template_store)
) -> HistoricalDataService:
    """Analysis of caller-supplied issues, no external services"""
    return HistoricalDataService(config, None, None, template_store)


def get_project_analyzer(jira_client: JiraClient = Depends(get_jira_client)) -> ProjectAnalyzer:
    return ProjectAnalyzer(jira_client)
