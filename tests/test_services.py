import pytest

from src.models.pattern_models import PatternSet, QualityBuckets
from src.services.historical_service import HistoricalDataService
from src.services.jira_url_service import JiraUrlService, parse_jira_url
from src.services.project_analyzer import ProjectAnalyzer, extract_terms
from src.services.task_generation_service import (
    TaskGenerationService,
    format_content_by_template,
    merge_labels
)
from src.services.template_store import InMemoryTemplateStore
from src.config.default_templates import default_templates
from src.utils.exceptions import (
    InvalidInputException,
    JiraIssueNotFoundException,
    MissingConfigException
)
from tests.fakes import BASE_URL, FakeJiraClient, make_analyzed, make_issue


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def generation(fake_openai, template_store, fake_jira, sleeps):
    return TaskGenerationService(fake_openai, template_store, fake_jira, sleep=sleeps.append)


class TestTaskGeneration:
    def test_merge_labels(self):
        assert merge_labels(['a', 'b'], None, ['b', 'c']) == ['a', 'b', 'c']

    def test_string_labels_are_not_split_into_characters(self):
        assert merge_labels(['old'], 'api, auth') == ['old', 'api', 'auth']

        template = default_templates()['Backend']
        formatted = format_content_by_template({'task_summary': "Login", 'labels': 'api, auth'}, template)
        assert formatted['labels'] == ['api', 'auth']

    def test_format_fills_placeholders(self):
        template = default_templates()['Frontend']
        content = {
            'task_summary': "New settings page",
            'goal': "Self-service settings",
            'tasks': "Build form",
            'acceptance_criteria': ["Saves", "Validates"],
            'labels': ['settings']
        }

        formatted = format_content_by_template(content, template)

        assert formatted['title'] == "[Frontend] New settings page"
        assert "🎯 **Goal:** Self-service settings" in formatted['description']
        assert "- Build form" in formatted['description']
        assert "- Saves\n- Validates" in formatted['description']
        assert "{{ui_requirements}}" not in formatted['description']
        assert "Not specified" in formatted['description']
        assert "👥 **Assignee:** Auto-assign" in formatted['description']
        assert formatted['priority'] == "Medium"

    def test_create_task(self, generation, fake_jira):
        result = generation.create_task("Add login endpoint", "Backend")

        task = fake_jira.created[0]
        assert task.title == "[Backend] Implement login API"
        assert "Use JWT" in task.description
        assert task.labels == ['auth', 'backend', 'development']
        assert task.assignee == "user@example.com"
        assert result['issueKey'] == "PROJ-101"
        assert result['category'] == "Backend"
        assert result['priority'] == "High"

    def test_explicit_assignee_wins(self, generation, fake_jira):
        generation.create_task("Add login endpoint", "Backend", assignee="dev@example.com")
        assert fake_jira.created[0].assignee == "dev@example.com"

    def test_create_task_requires_jira(self, fake_openai, template_store):
        service = TaskGenerationService(fake_openai, template_store)
        with pytest.raises(MissingConfigException):
            service.create_task("Add login endpoint", "Backend")

    def test_generate_variants(self, generation, fake_openai, sleeps):
        variants = generation.generate_variants("Add login endpoint", "Backend", count=3)

        assert [v['variant'] for v in variants] == [1, 2, 3]
        assert fake_openai.prompts[0] == "Add login endpoint (Variant 1)"
        assert sleeps == [1.0, 1.0]

    @pytest.mark.parametrize('count', [1, 6])
    def test_variant_count_bounds(self, generation, count):
        with pytest.raises(ValueError):
            generation.generate_variants("Add login endpoint", "Backend", count=count)

    def test_enhance_issue(self, generation, fake_jira):
        result = generation.enhance_issue("PROJ-1")

        update = fake_jira.updated[0]
        assert update['summary'] == "Generated Backend task"
        assert update['labels'] == ['backend', 'db', 'generated']
        assert result['category'] == "Backend"
        assert result['issueUrl'] == f"{BASE_URL}/browse/PROJ-1"

    def test_enhance_missing_issue(self, generation):
        with pytest.raises(JiraIssueNotFoundException):
            generation.enhance_issue("PROJ-404")


@pytest.fixture
def url_service(fake_jira, fake_openai, template_store, generation):
    return JiraUrlService(fake_jira, fake_openai, template_store, generation)


class TestJiraUrl:
    def test_parse_issue_url(self):
        parsed = parse_jira_url(f"{BASE_URL}/browse/PROJ-123")
        assert parsed.issue_key == "PROJ-123"
        assert parsed.project_key == "PROJ"
        assert parsed.base_url == BASE_URL
        assert parsed.is_valid

    def test_parse_board_url(self):
        parsed = parse_jira_url(f"{BASE_URL}/secure/RapidBoard.jspa?rapidView=42&projectKey=ABC")
        assert parsed.issue_key is None
        assert parsed.project_key == "ABC"
        assert parsed.rapid_view_id == "42"

    def test_parse_url_without_keys(self):
        assert not parse_jira_url(f"{BASE_URL}/wiki/home").is_valid

    def test_parse_rejects_non_url(self):
        with pytest.raises(InvalidInputException) as exc_info:
            parse_jira_url("PROJ-1")
        assert exc_info.value.field == 'url'

    def test_analyze_url_tolerates_missing_issue(self, url_service):
        result = url_service.analyze_url(f"{BASE_URL}/browse/PROJ-404")

        assert result['parsed']['issueKey'] == "PROJ-404"
        assert result['issueInfo'] is None
        assert result['projectInfo']['key'] == "PROJ"

    def test_analyze_url_rejects_keyless_url(self, url_service):
        with pytest.raises(InvalidInputException):
            url_service.analyze_url(f"{BASE_URL}/wiki/home")

    def test_create_from_url_without_ai(self, url_service, fake_jira, fake_openai):
        result = url_service.create_from_url(f"{BASE_URL}/browse/PROJ-1", use_ai=False,
                                             additional_info="Also add a migration")

        task = fake_jira.created[0]
        assert task.title == "[Backend] Add database index for orders"
        assert "Created from issue: PROJ-1" in task.description
        assert "Also add a migration" in task.description
        assert task.priority == "High"
        assert task.labels == ['backend', 'db', 'development']
        assert fake_openai.prompts == []
        assert result['sourceIssue']['key'] == "PROJ-1"

    def test_create_from_url_with_ai(self, url_service, fake_jira, fake_openai):
        url_service.create_from_url(f"{BASE_URL}/browse/PROJ-1", target_project="NEW")

        assert fake_openai.prompts[0].startswith("Create a task based on: Add database index for orders")
        assert fake_jira.created[0].project_key == "NEW"

    def test_clone_task(self, url_service, fake_jira):
        result = url_service.clone_task(f"{BASE_URL}/browse/PROJ-2", "OPS", target_issue_type="Bug")

        task = fake_jira.created[0]
        assert task.project_key == "OPS"
        assert task.issue_type == "Bug"
        assert task.labels == ['frontend']
        assert task.priority == "Medium"
        assert result['category'] == "Frontend"
        assert result['issueKey'] == "OPS-101"

    def test_clone_requires_existing_issue(self, url_service):
        with pytest.raises(InvalidInputException):
            url_service.clone_task(f"{BASE_URL}/browse/PROJ-404", "OPS")

    def test_generate_from_url_skips_jira(self, fake_openai, template_store):
        service = JiraUrlService(None, fake_openai, template_store, None)

        content = service.generate_from_url(f"{BASE_URL}/browse/PROJ-7", "Needs retries")

        assert content['sourceIssueKey'] == "PROJ-7"
        assert content['category'] == "Backend"
        assert fake_openai.prompts == ["Needs retries Task: PROJ-7"]

    def test_generate_from_url_requires_issue_key(self, fake_openai, template_store):
        service = JiraUrlService(None, fake_openai, template_store, None)
        with pytest.raises(InvalidInputException):
            service.generate_from_url(f"{BASE_URL}/secure/RapidBoard.jspa?projectKey=ABC")


@pytest.fixture
def historical(config, fake_jira, fake_openai, template_store):
    return HistoricalDataService(config, fake_jira, fake_openai, template_store)


class TestHistorical:
    def test_parse_page(self, historical, fake_jira):
        batch = historical.parse_historical_tasks(max_results=1)

        assert batch.total == 2
        assert batch.has_more
        assert len(batch.issues) == 1
        assert fake_jira.searches == ["project = PROJ"]

    def test_custom_jql(self, historical, fake_jira):
        batch = historical.parse_historical_tasks(jql="labels = db")
        assert not batch.has_more
        assert fake_jira.searches == ["labels = db"]

    def test_project_key_required(self, historical, config):
        config.jira.project_key = ''
        with pytest.raises(InvalidInputException):
            historical.parse_historical_tasks()

    def test_create_templates_persists(self, historical, template_store):
        issues = [make_analyzed(90, labels=['api']), make_analyzed(82, labels=['api'])]

        templates = historical.create_templates(issues)

        assert list(templates) == ['Backend']
        assert template_store.load('Backend').based_on == 2
        assert template_store.get_template('Backend').quality_score == 86

    def test_context_uses_good_issues_only(self, historical):
        issues = [make_analyzed(90 - i, key=f"P-{i}", description="d" * 300) for i in range(7)]
        issues.append(make_analyzed(40, key="P-low"))

        context = historical.build_historical_context(issues)

        assert context.count("   Priority:") == 5
        assert "d" * 200 + "..." in context
        assert "d" * 201 not in context
        assert historical.build_historical_context([make_analyzed(69)]) == ''

    def test_recommendations_on_empty_patterns(self, historical):
        recommendations = historical.generate_recommendations(PatternSet())

        assert len(recommendations) == 1
        assert recommendations[0]['type'] == 'quality'
        assert recommendations[0]['data']['percentage'] == 0

    def test_recommendations(self, historical):
        patterns = PatternSet(
            categories={'Backend': 5, 'Frontend': 2, 'DevOps': 1, 'Analytics': 1},
            priorities={'High': 4, 'Low': 3, 'Medium': 2},
            labels={'api': 3},
            quality=QualityBuckets(high=[make_analyzed(90)], low=[make_analyzed(10)] * 7)
        )

        by_type = {r['type']: r for r in historical.generate_recommendations(patterns)}

        assert by_type['categories']['data'] == [('Backend', 5), ('Frontend', 2), ('DevOps', 1)]
        assert by_type['priorities']['data'] == [('High', 4), ('Low', 3)]
        # 1 of 8 = 12.5% rounds half up
        assert by_type['quality']['data']['percentage'] == 13

    def test_create_task_from_history(self, config, fake_openai, template_store):
        description = "Goal: x\nAcceptance criteria: y\napi " + "z" * 600
        jira = FakeJiraClient([make_issue("PROJ-5", "Add database index", description=description,
                                          labels=['a', 'b', 'c'])])
        service = HistoricalDataService(config, jira, fake_openai, template_store)

        content = service.create_task_from_history("Add cache layer", "Backend", max_historical_tasks=5)

        assert content['historicalContext'] == 'used'
        assert "Context from historical tasks" in fake_openai.prompts[0]

    def test_create_task_without_history(self, historical, fake_jira, fake_openai):
        content = historical.create_task_from_history("Add cache layer", "Backend", use_historical_data=False)

        assert content['historicalContext'] == 'not used'
        assert fake_jira.searches == []
        assert fake_openai.prompts == ["Add cache layer"]

    def test_analyze_issue_records_names_field(self, historical):
        with pytest.raises(InvalidInputException) as exc_info:
            historical.analyze_issue_records([{'key': 'P-1', 'summary': 'ok'}, {'key': 'P-2'}])
        assert exc_info.value.field == 'issues[1].summary'

    def test_stats(self, historical):
        stats = historical.get_stats("PROJ")

        assert stats['project'] == "PROJ"
        assert stats['totalTasks'] == 2
        assert stats['categories'] == {'Backend': 1, 'Frontend': 1}


class TestProjectAnalyzer:
    def test_extract_terms(self):
        assert extract_terms("The quick brown fox with some data") == ['quick', 'brown', 'some', 'data']

    def test_batches_and_failed_batch_is_skipped(self):
        issues = [make_issue(f"PROJ-{i}", f"Issue {i}") for i in range(1, 121)]
        jira = FakeJiraClient(issues)
        keys = [issue.key for issue in issues]
        jira.failing_queries.append(f"key in ({','.join(keys[50:100])})")
        pauses = []

        result = ProjectAnalyzer(jira, sleep=pauses.append).analyze_project(keys, "PROJ")

        assert len(jira.searches) == 3
        assert pauses == [0.5, 0.5]
        assert result['totalIssues'] == 70

    def test_perform_analysis(self):
        issues = [
            make_issue("P-1", "Deploy service", status="Done", priority="High",
                       labels=['ops'], description="deploy " * 30),
            make_issue("P-2", "Sales report", status="Open", priority="High",
                       labels=['ops', 'data'], description="report " * 20),
            make_issue("P-3", "Fix", status="Open"),
        ]

        result = ProjectAnalyzer(FakeJiraClient()).perform_analysis(issues, "P")

        assert result['totalIssues'] == 3
        assert result['categories'] == {'DevOps': 1, 'Analytics': 1, 'Backend': 1}
        assert result['priorities'] == {'High': 2, 'None': 1}
        assert result['statuses'] == {'Done': 1, 'Open': 2}
        assert result['topLabels'] == ['ops', 'data']
        assert result['commonTerms'][0] == {'term': 'deploy', 'count': 31}
        assert [e['key'] for e in result['bestExamples']] == ['P-1', 'P-2']


def test_in_memory_store_starts_with_defaults():
    store = InMemoryTemplateStore()
    assert store.get_template('Analytics').priority == "High"
