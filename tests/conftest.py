import pytest

from src.config.settings import Config, get_config
from src.services.template_store import InMemoryTemplateStore
from src.utils.rate_limiter import reset_rate_limits
from tests.fakes import BASE_URL, FakeJiraClient, FakeOpenAIClient, make_issue

TEST_ENV = {
    'JIRA_BASE_URL': BASE_URL,
    'JIRA_USERNAME': 'bot@example.com',
    'JIRA_API_TOKEN': 'token',
    'JIRA_PROJECT_KEY': 'PROJ',
    'OPENAI_API_KEY': 'sk-test',
    'TEMPLATE_STORE_PATH': '',
    'APP_ENV': 'test',
}


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    for name, value in TEST_ENV.items():
        monkeypatch.setenv(name, value)
    get_config.cache_clear()
    reset_rate_limits()
    yield
    get_config.cache_clear()
    reset_rate_limits()


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def fake_jira() -> FakeJiraClient:
    return FakeJiraClient([
        make_issue("PROJ-1", "Add database index for orders", priority="Highest",
                   labels=['backend', 'db'], description="Orders table needs an index",
                   status="To Do", url=f"{BASE_URL}/browse/PROJ-1"),
        make_issue("PROJ-2", "Polish settings page", labels=['frontend'], assignee="Ann"),
    ])


@pytest.fixture
def fake_openai() -> FakeOpenAIClient:
    return FakeOpenAIClient()


@pytest.fixture
def template_store() -> InMemoryTemplateStore:
    return InMemoryTemplateStore()
