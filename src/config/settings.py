# ==============================================
# Configuration management for Jira Task Automation
# ==============================================

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

from src.utils.exceptions import InvalidConfigException, MissingConfigException

# Load .env file from project root directory
# This ensures .env is found regardless of where the script is run from
project_root = Path(__file__).parent.parent.parent
env_path = project_root / '.env'

load_dotenv(dotenv_path=env_path)


@dataclass
class JiraConfig:
    """Jira integration configuration"""
    base_url: str
    username: str
    api_token: str
    project_key: str
    issue_type: str = "Task"

    def __post_init__(self):
        self.base_url = self.base_url.rstrip('/')
        if self.base_url and not self.base_url.startswith('https://'):
            raise InvalidConfigException(
                "JIRA_BASE_URL must start with https://",
                error_code="ERR_CONFIG_002",
                context={'JIRA_BASE_URL': self.base_url}
            )

    def browse_url(self, issue_key: str) -> str:
        """Public link to an issue"""
        return f"{self.base_url}/browse/{issue_key}"


@dataclass
class OpenAIConfig:
    """OpenAI chat-completion configuration"""
    api_key: str
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.7
    max_tokens: int = 1000


@dataclass
class ServerConfig:
    """HTTP server configuration"""
    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "development"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@dataclass
class RateLimitConfig:
    """Sliding-window rate limit defaults"""
    window_seconds: int = 15 * 60
    max_requests: int = 100


@dataclass
class TemplateStoreConfig:
    """Where synthesized templates are persisted"""
    path: Optional[str] = ".cache/templates.json"


class Config:
    """Main configuration class"""

    def __init__(self):
        self.jira = JiraConfig(
            base_url=os.getenv('JIRA_BASE_URL', ''),
            username=os.getenv('JIRA_USERNAME', ''),
            api_token=os.getenv('JIRA_API_TOKEN', ''),
            project_key=os.getenv('JIRA_PROJECT_KEY', ''),
            issue_type=os.getenv('JIRA_ISSUE_TYPE', 'Task')
        )

        self.openai = OpenAIConfig(
            api_key=os.getenv('OPENAI_API_KEY', ''),
            model=os.getenv('OPENAI_MODEL', 'gpt-3.5-turbo'),
            temperature=float(os.getenv('OPENAI_TEMPERATURE', '0.7')),
            max_tokens=int(os.getenv('OPENAI_MAX_TOKENS', '1000'))
        )

        self.server = ServerConfig(
            host=os.getenv('HOST', '0.0.0.0'),
            port=int(os.getenv('PORT', '3000')),
            environment=os.getenv('APP_ENV', 'development')
        )

        self.rate_limit = RateLimitConfig(
            window_seconds=int(os.getenv('RATE_LIMIT_WINDOW_SECONDS', str(15 * 60))),
            max_requests=int(os.getenv('RATE_LIMIT_MAX_REQUESTS', '100'))
        )

        self.template_store = TemplateStoreConfig(
            path=os.getenv('TEMPLATE_STORE_PATH', '.cache/templates.json')
        )

    def validate(self) -> bool:
        """Validate configuration required for Jira + OpenAI mode"""
        required_fields = {
            'JIRA_BASE_URL': self.jira.base_url,
            'JIRA_USERNAME': self.jira.username,
            'JIRA_API_TOKEN': self.jira.api_token,
            'JIRA_PROJECT_KEY': self.jira.project_key,
            'OPENAI_API_KEY': self.openai.api_key
        }
        return self._check_required(required_fields)

    def validate_jira(self) -> bool:
        """Validate only the Jira credentials (analysis endpoints)"""
        required_fields = {
            'JIRA_BASE_URL': self.jira.base_url,
            'JIRA_USERNAME': self.jira.username,
            'JIRA_API_TOKEN': self.jira.api_token
        }
        return self._check_required(required_fields)

    def validate_openai(self) -> bool:
        """Validate only the OpenAI key (simple mode works without Jira)"""
        return self._check_required({'OPENAI_API_KEY': self.openai.api_key})

    def _check_required(self, required_fields: dict) -> bool:
        missing = [name for name, value in required_fields.items() if not value]

        if missing:
            raise MissingConfigException(
                f"Missing required environment variables: {', '.join(missing)}. "
                f"Please check your .env file",
                error_code="ERR_CONFIG_001",
                context={'missing': ','.join(missing)}
            )

        return True

    def to_dict(self) -> dict:
        """Convert config to dictionary (for logging, debugging)"""
        return {
            'jira': {
                'base_url': self.jira.base_url,
                'username': self.jira.username,
                'project_key': self.jira.project_key,
                'issue_type': self.jira.issue_type,
                'api_token_set': bool(self.jira.api_token)
            },
            'openai': {
                'model': self.openai.model,
                'temperature': self.openai.temperature,
                'max_tokens': self.openai.max_tokens,
                'api_key_set': bool(self.openai.api_key)
            },
            'server': {
                'host': self.server.host,
                'port': self.server.port,
                'environment': self.server.environment
            },
            'rate_limit': {
                'window_seconds': self.rate_limit.window_seconds,
                'max_requests': self.rate_limit.max_requests
            }
        }


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Process-wide config, built once from the environment"""
    return Config()
