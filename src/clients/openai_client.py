# ==============================================
# OpenAI chat-completion client
# ==============================================

import json
import re
from typing import Dict, Any, List, Optional

from openai import OpenAI, OpenAIError

from src.config.settings import Config
from src.utils.logger import get_logger, PerformanceTimer, ErrorCodeRegistry
from src.utils.exceptions import OpenAIClientException, GenerationFailedException
from src.utils.helpers import normalize_labels

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at writing technical tasks for an issue tracker. "
    "Generate high-quality task descriptions and answer in JSON."
)

# Fields the model must fill in each mode
SIMPLE_REQUIRED_FIELDS = ['title', 'description', 'priority', 'labels']
STRUCTURED_REQUIRED_FIELDS = ['task_summary', 'goal', 'tasks', 'acceptance_criteria']


class OpenAIClient:
    """Client for OpenAI chat completions"""

    def __init__(self, config: Config, client: Optional[OpenAI] = None):
        """
        Initialize OpenAI client

        Args:
            config: Application configuration
            client: Pre-built OpenAI instance (tests)
        """
        self.config = config

        if client is not None:
            self.client = client
            return

        try:
            self.client = OpenAI(api_key=config.openai.api_key)
            logger.info(f"Initialized OpenAI model: {config.openai.model}")
        except OpenAIError as e:
            raise OpenAIClientException(
                f"Failed to initialize OpenAI: {str(e)}",
                error_code=ErrorCodeRegistry.ERR_AI_REQUEST,
                original_exception=e
            )

    def generate_task_content(self, description: str, category: str) -> Dict[str, Any]:
        """
        Generate a copy/paste-ready task (simple mode)

        Args:
            description: Short task description
            category: Task category name

        Returns:
            Dict with title, description, priority, labels and optional
            assignee_suggestion, acceptance_criteria and *_notes fields

        Raises:
            GenerationFailedException: If the response is unusable
        """
        logger.info(f"Generating task content for category '{category}'")

        prompt = self._create_simple_prompt(description, category)
        response_text = self._complete(prompt)
        return self.parse_response(response_text, SIMPLE_REQUIRED_FIELDS)

    def generate_structured_content(self, description: str, category: str) -> Dict[str, Any]:
        """
        Generate template fields (task_summary, goal, tasks, acceptance_criteria, ...)

        Raises:
            GenerationFailedException: If the response is unusable
        """
        logger.info(f"Generating structured content for category '{category}'")

        prompt = self._create_structured_prompt(description, category)
        response_text = self._complete(prompt)
        content = self.parse_response(response_text, STRUCTURED_REQUIRED_FIELDS)

        for list_field in ('tasks', 'acceptance_criteria'):
            if isinstance(content[list_field], str):
                content[list_field] = [content[list_field]]

        return content

    def check_api_key(self) -> bool:
        """True when an API key is configured"""
        return bool(self.config.openai.api_key)

    def _complete(self, prompt: str) -> str:
        try:
            with PerformanceTimer(logger, "openai completion"):
                response = self.client.chat.completions.create(
                    model=self.config.openai.model,
                    messages=[
                        {'role': 'system', 'content': SYSTEM_PROMPT},
                        {'role': 'user', 'content': prompt}
                    ],
                    max_tokens=self.config.openai.max_tokens,
                    temperature=self.config.openai.temperature
                )
        except OpenAIError as e:
            raise OpenAIClientException(
                f"OpenAI request failed: {str(e)}",
                error_code=ErrorCodeRegistry.ERR_AI_REQUEST,
                original_exception=e
            )

        if not response.choices or not response.choices[0].message.content:
            raise GenerationFailedException(
                "Empty response from OpenAI",
                error_code=ErrorCodeRegistry.ERR_AI_PARSE
            )

        return response.choices[0].message.content

    def _create_simple_prompt(self, description: str, category: str) -> str:
        return f"""
Write a technical task for the "{category}" category.

Source description: "{description}"

Return the result as JSON:

{{
  "title": "Task title",
  "description": "Detailed task description ready to paste into Jira",
  "priority": "Low/Medium/High",
  "labels": ["label1", "label2"],
  "assignee_suggestion": "Suggested assignee or team",
  "acceptance_criteria": [
    "criterion 1",
    "criterion 2",
    "criterion 3"
  ],
  "technical_notes": "Technical notes (Backend/DevOps only)",
  "ui_notes": "UI/UX notes (Frontend only)",
  "infrastructure_notes": "Infrastructure notes (Infrastructure only)",
  "analytics_notes": "Analytics notes (Analytics only)"
}}

Important:
- Use professional terminology
- The description must be ready to copy into Jira
- Acceptance criteria must be measurable
- The priority must match the importance of the task
- Add relevant labels
- Fill in only the fields that apply to the task category

Return ONLY valid JSON, no markdown formatting.
"""

    def _create_structured_prompt(self, description: str, category: str) -> str:
        return f"""
Write a technical specification for a task in the "{category}" category.

Source description: "{description}"

Fill in the following template and return the result as JSON:

{{
  "task_summary": "short task title",
  "goal": "goal of the task",
  "tasks": [
    "step 1",
    "step 2",
    "step 3"
  ],
  "acceptance_criteria": [
    "criterion 1",
    "criterion 2",
    "criterion 3"
  ],
  "priority": "Low/Medium/High",
  "labels": ["label1", "label2"],
  "technical_requirements": "technical requirements (Backend only)",
  "ui_requirements": "UI/UX requirements (Frontend only)",
  "infrastructure_requirements": "infrastructure requirements (Infrastructure only)",
  "metrics": "metrics to track (Analytics only)"
}}

Important:
- Use professional terminology
- Steps must be concrete and achievable
- Acceptance criteria must be measurable
- The priority must match the importance of the task
- Add relevant labels
- Fill in only the fields that apply to the task category

Return ONLY valid JSON, no markdown formatting.
"""

    def parse_response(self, response_text: str, required_fields: List[str]) -> Dict[str, Any]:
        """
        Parse and validate a model response

        Args:
            response_text: Raw response from OpenAI
            required_fields: Fields that must be present and non-empty

        Returns:
            Parsed dictionary

        Raises:
            GenerationFailedException: If parsing fails
        """
        try:
            # Remove markdown code blocks if present
            text = response_text.strip()

            if text.startswith('```'):
                text = text.split('\n', 1)[1] if '\n' in text else text[3:]
                if text.endswith('```'):
                    text = text.rsplit('```', 1)[0]

            # Find JSON boundaries
            json_start = text.find('{')
            json_end = text.rfind('}') + 1

            if json_start == -1 or json_end == 0:
                raise ValueError("No JSON object found in response")

            json_str = self._fix_common_json_issues(text[json_start:json_end])
            data = json.loads(json_str)

            if not isinstance(data, dict):
                raise ValueError("Response JSON is not an object")

            if 'labels' in data:
                data['labels'] = normalize_labels(data['labels'])

            missing_fields = [field for field in required_fields if not data.get(field)]
            if missing_fields:
                raise ValueError(f"Missing required fields: {', '.join(missing_fields)}")

            return data

        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Failed to parse OpenAI response: {str(e)}")
            logger.debug(f"Raw response: {response_text[:500]}")
            raise GenerationFailedException(
                f"Failed to parse generated content: {str(e)}",
                error_code=ErrorCodeRegistry.ERR_AI_PARSE,
                original_exception=e
            )

    def _fix_common_json_issues(self, json_str: str) -> str:
        """Remove trailing commas before closing braces/brackets"""
        return re.sub(r',(\s*[}\]])', r'\1', json_str)
