import pytest
from fastapi.testclient import TestClient

from main import app
from src.config.settings import get_config
from src.routers.dependencies import (
    get_jira_client,
    get_openai_client,
    get_optional_jira_client,
    get_optional_openai_client,
    get_simple_generation_service,
    get_template_store
)
from src.services.task_generation_service import TaskGenerationService

TASK = {'description': "Add a login endpoint with JWT", 'category': "Backend"}


@pytest.fixture
def client(fake_jira, fake_openai, template_store):
    app.dependency_overrides.update({
        get_jira_client: lambda: fake_jira,
        get_optional_jira_client: lambda: fake_jira,
        get_openai_client: lambda: fake_openai,
        get_optional_openai_client: lambda: fake_openai,
        get_template_store: lambda: template_store,
        get_simple_generation_service: lambda: TaskGenerationService(
            fake_openai, template_store, sleep=lambda seconds: None
        ),
    })
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestService:
    def test_root_lists_endpoints(self, client):
        body = client.get("/").json()
        assert body['endpoints']['createTask'] == 'POST /api/create-task'

    def test_liveness(self, client):
        assert client.get("/health").json() == {'status': 'healthy'}

    def test_unknown_route(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {
            'success': False,
            'error': 'Endpoint not found',
            'path': '/api/nope',
            'method': 'GET'
        }

    def test_correlation_id_header(self, client):
        assert client.get("/health").headers['X-Correlation-ID'].startswith('req-')
        echoed = client.get("/health", headers={'X-Correlation-ID': 'abc-123'})
        assert echoed.headers['X-Correlation-ID'] == 'abc-123'


class TestTaskApi:
    def test_create_task(self, client, fake_jira):
        response = client.post("/api/create-task", json=TASK)

        assert response.status_code == 201
        body = response.json()
        assert body['success'] is True
        assert body['data']['issueKey'] == "PROJ-101"
        assert body['data']['labels'] == ['auth', 'backend', 'development']
        assert len(fake_jira.created) == 1

    def test_russian_category_alias(self, client):
        response = client.post("/api/create-task", json={**TASK, 'category': "Аналитика"})
        assert response.json()['data']['category'] == "Analytics"

    def test_validation_error(self, client):
        response = client.post("/api/create-task", json={'description': "short", 'category': "Backend"})

        assert response.status_code == 400
        body = response.json()
        assert body['code'] == 'VALIDATION_ERROR'
        assert body['details'][0]['field'] == 'description'
        assert body['details'][0]['message'] == "description must be at least 10 characters"

    def test_unknown_category(self, client):
        response = client.post("/api/create-task", json={**TASK, 'category': "Marketing"})

        assert response.status_code == 400
        detail = response.json()['details'][0]
        assert detail['field'] == 'category'
        assert detail['message'].startswith("Unknown category 'Marketing'")

    def test_categories(self, client):
        data = client.get("/api/categories").json()['data']
        assert data['categories'] == ['DevOps', 'Analytics', 'Backend', 'Frontend', 'Infrastructure']

    def test_health(self, client, fake_jira):
        assert client.get("/api/health").status_code == 200

        fake_jira.connected = False
        response = client.get("/api/health")
        assert response.status_code == 503
        assert response.json()['data']['jira'] == 'disconnected'

    def test_project_info(self, client):
        data = client.get("/api/project-info").json()['data']
        assert data['key'] == "PROJ"
        assert data['issueTypes'][0]['name'] == "Task"

    def test_enhance_issue(self, client, fake_jira):
        response = client.post("/api/enhance-issue", json={'issueKey': "PROJ-1"})

        assert response.status_code == 200
        assert fake_jira.updated[0]['key'] == "PROJ-1"

    def test_missing_jira_config(self, client, monkeypatch):
        app.dependency_overrides.pop(get_jira_client)
        monkeypatch.setenv('JIRA_API_TOKEN', '')
        get_config.cache_clear()

        response = client.get("/api/project-info")

        assert response.status_code == 503
        assert response.json()['code'] == 'ERR_CONFIG_001'

    def test_creation_rate_limit(self, client):
        statuses = [client.post("/api/create-task", json=TASK).status_code for _ in range(11)]
        assert statuses[:10] == [201] * 10
        assert statuses[10] == 429


class TestSimpleApi:
    def test_generate(self, client, fake_openai):
        response = client.post("/api/simple/generate", json=TASK)

        assert response.status_code == 200
        assert response.json()['data']['category'] == "Backend"
        assert fake_openai.prompts == [TASK['description']]

    def test_generate_variants(self, client):
        response = client.post("/api/simple/generate-variants", json={**TASK, 'count': 2})
        assert response.json()['data']['count'] == 2

    def test_generate_from_url(self, client):
        response = client.post("/api/simple/generate-from-url",
                               json={'url': "https://example.atlassian.net/browse/PROJ-9"})
        assert response.json()['data']['sourceIssueKey'] == "PROJ-9"

    def test_generate_from_url_rejects_relative_url(self, client):
        response = client.post("/api/simple/generate-from-url", json={'url': "/browse/PROJ-9"})
        assert response.status_code == 400

    def test_categories(self, client):
        data = client.get("/api/simple/categories").json()['data']
        assert [c['name'] for c in data] == ['DevOps', 'Analytics', 'Backend', 'Frontend', 'Infrastructure']

    def test_health(self, client, fake_openai):
        assert client.get("/api/simple/health").status_code == 200
        fake_openai.configured = False
        assert client.get("/api/simple/health").status_code == 503


class TestJiraUrlApi:
    def test_analyze_url(self, client):
        response = client.post("/api/jira/analyze-url", json={'url': "https://example.atlassian.net/browse/PROJ-1"})

        data = response.json()['data']
        assert data['parsed']['issueKey'] == "PROJ-1"
        assert data['issueInfo']['summary'] == "Add database index for orders"

    def test_create_from_url(self, client):
        response = client.post("/api/jira/create-from-url", json={
            'url': "https://example.atlassian.net/browse/PROJ-1",
            'useAI': False,
            'targetProject': "NEW"
        })

        assert response.status_code == 201
        assert response.json()['data']['issueKey'] == "NEW-101"

    def test_clone_requires_target_project(self, client):
        response = client.post("/api/jira/clone-task",
                               json={'sourceUrl': "https://example.atlassian.net/browse/PROJ-1"})
        assert response.status_code == 400
        assert response.json()['details'][0]['field'] == 'targetProject'

    def test_clone_task(self, client):
        response = client.post("/api/jira/clone-task", json={
            'sourceUrl': "https://example.atlassian.net/browse/PROJ-2",
            'targetProject': "OPS"
        })
        assert response.status_code == 201
        assert response.json()['data']['sourceIssue']['key'] == "PROJ-2"

    def test_issue_not_found(self, client):
        response = client.get("/api/jira/issue/PROJ-404")

        assert response.status_code == 404
        assert response.json()['success'] is False
        assert response.json()['code'] == 'ERR_JIRA_002'

    def test_project(self, client):
        assert client.get("/api/jira/project/OPS").json()['data']['key'] == "OPS"


class TestHistoricalApi:
    def test_parse(self, client):
        response = client.post("/api/historical/parse", json={'projectKey': "PROJ", 'maxResults': 1})

        data = response.json()['data']
        assert data['total'] == 2
        assert data['hasMore'] is True
        assert len(data['issues']) == 1
        assert 'quality' in data['issues'][0]

    def test_analyze_patterns_bounds(self, client):
        response = client.post("/api/historical/analyze-patterns", json={'maxResults': 5})
        assert response.status_code == 400

    def test_analyze_patterns(self, client):
        data = client.post("/api/historical/analyze-patterns", json={}).json()['data']
        assert data['totalTasks'] == 2
        assert data['recommendations'][-1]['type'] == 'quality'

    def test_create_from_history(self, client):
        response = client.post("/api/historical/create-from-history",
                               json={**TASK, 'useHistoricalData': False})
        assert response.json()['data']['historicalContext'] == 'not used'

    def test_stats(self, client):
        data = client.get("/api/historical/stats/PROJ").json()['data']
        assert data['totalTasks'] == 2

    def test_analyze_issues(self, client, fake_jira):
        response = client.post("/api/historical/analyze-issues", json={'issues': [
            {'key': 'X-1', 'summary': 'Deploy pipeline', 'labels': ['ci']},
            {'key': 'X-2', 'summary': 'Sales dashboard'},
        ]})

        data = response.json()['data']
        assert data['patterns']['categories'] == {'DevOps': 1, 'Analytics': 1}
        assert fake_jira.searches == []

    def test_analyze_issues_names_bad_field(self, client):
        response = client.post("/api/historical/analyze-issues", json={'issues': [{'key': 'X-1'}]})

        assert response.status_code == 400
        assert response.json()['field'] == 'issues[0].summary'
        assert response.json()['code'] == 'ERR_DATA_001'

    @pytest.mark.parametrize('extra,field', [
        ({'labels': 'backend'}, 'issues[0].labels'),
        ({'labels': [1]}, 'issues[0].labels'),
        ({'description': {'type': 'doc'}}, 'issues[0].description'),
    ])
    def test_analyze_issues_rejects_mistyped_fields(self, client, extra, field):
        response = client.post("/api/historical/analyze-issues",
                               json={'issues': [{'key': 'X-1', 'summary': 'Docs', **extra}]})

        assert response.status_code == 400
        assert response.json()['field'] == field

    def test_historical_rate_limit(self, client):
        statuses = [client.get("/api/historical/stats/PROJ").status_code for _ in range(6)]
        assert statuses == [200] * 5 + [429]


def test_full_analysis(client):
    response = client.post("/api/project-analyzer/full-analysis",
                           json={'projectKey': "PROJ", 'issueKeys': ["PROJ-1", "PROJ-2", "PROJ-3"]})

    data = response.json()['data']
    assert data['projectKey'] == "PROJ"
    assert data['totalIssues'] == 2
    assert data['categories'] == {'Backend': 1, 'Frontend': 1}


def test_full_analysis_rejects_jql_in_issue_keys(client, fake_jira):
    response = client.post("/api/project-analyzer/full-analysis",
                           json={'projectKey': "PROJ", 'issueKeys': ["A) OR project = B-1"]})

    assert response.status_code == 400
    assert response.json()['details'][0]['field'] == 'issueKeys'
    assert fake_jira.searches == []
