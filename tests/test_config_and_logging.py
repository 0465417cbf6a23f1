import json
import logging

import pytest

from src.config.settings import Config
from src.utils.exceptions import InvalidConfigException, MissingConfigException
from src.utils.logger import (
    ErrorCodeRegistry,
    StructuredFormatter,
    clear_correlation_id,
    generate_correlation_id,
    get_logger,
    get_correlation_id,
    set_correlation_id
)


class TestConfig:
    def test_defaults(self, config):
        assert config.openai.model == "gpt-3.5-turbo"
        assert config.openai.max_tokens == 1000
        assert config.server.port == 3000
        assert config.rate_limit.window_seconds == 900
        assert config.jira.issue_type == "Task"
        assert config.validate()

    def test_missing_values_are_listed(self, monkeypatch):
        monkeypatch.setenv('JIRA_USERNAME', '')
        monkeypatch.setenv('OPENAI_API_KEY', '')

        with pytest.raises(MissingConfigException) as exc_info:
            Config().validate()

        assert 'JIRA_USERNAME' in exc_info.value.message
        assert 'OPENAI_API_KEY' in exc_info.value.message

    def test_simple_mode_only_needs_openai(self, monkeypatch):
        monkeypatch.setenv('JIRA_API_TOKEN', '')
        assert Config().validate_openai()

    def test_jira_url_must_be_https(self, monkeypatch):
        monkeypatch.setenv('JIRA_BASE_URL', 'http://jira.local')
        with pytest.raises(InvalidConfigException):
            Config()

    def test_to_dict_masks_secrets(self, config):
        data = config.to_dict()
        assert data['jira']['api_token_set'] is True
        assert 'api_token' not in data['jira']
        assert 'sk-test' not in json.dumps(data)


class TestLogging:
    def test_correlation_id(self):
        correlation_id = generate_correlation_id('req')
        set_correlation_id(correlation_id)
        assert get_correlation_id() == correlation_id
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_json_format(self):
        record = logging.LogRecord('jira', logging.INFO, __file__, 10, "Fetched %s", ('PROJ-1',), None)
        record.issue_key = 'PROJ-1'
        set_correlation_id('req-1')

        try:
            data = json.loads(StructuredFormatter(json_format=True).format(record))
        finally:
            clear_correlation_id()

        assert data['message'] == "Fetched PROJ-1"
        assert data['issue_key'] == 'PROJ-1'
        assert data['correlation_id'] == 'req-1'

    def test_text_format(self):
        record = logging.LogRecord('jira', logging.WARNING, __file__, 10, "Slow", (), None)
        record.error_code = ErrorCodeRegistry.ERR_JIRA_FETCH

        line = StructuredFormatter().format(record)

        assert "[ERR_JIRA_001]" in line
        assert line.endswith("| Slow")

    def test_error_descriptions(self):
        assert ErrorCodeRegistry.get_description(ErrorCodeRegistry.ERR_AI_PARSE) == \
            "OpenAI response could not be parsed"
        assert ErrorCodeRegistry.get_description("ERR_NOPE") == "Unknown error"

    def test_context_logger_adds_fields(self, caplog):
        log = get_logger('jira.context_test', project_key='PROJ')
        log.logger.propagate = True

        with caplog.at_level(logging.INFO, logger='jira.context_test'):
            log.info("Parsing", extra={'issue_key': 'PROJ-1'})

        record = caplog.records[-1]
        assert record.project_key == 'PROJ'
        assert record.issue_key == 'PROJ-1'
