# ==============================================
# Key-value persistence for category templates
# ==============================================

import json
import threading
from pathlib import Path
from typing import Dict, Optional, Any

from src.config.default_templates import default_templates, DEFAULT_ASSIGNEES
from src.models.pattern_models import Category, Template
from src.utils.exceptions import TemplateStoreException
from src.utils.logger import get_logger, ErrorCodeRegistry

logger = get_logger(__name__)


class TemplateStore:
    """
    Base template store: ``load(key)`` / ``save(key, template)``

    Subclasses implement ``_read_blob`` / ``_write_blob`` over a single
    ``{"categories": {...}, "default_assignees": {...}}`` blob. Lookups fall
    back to the built-in templates when nothing is stored.
    """

    def __init__(self):
        self._lock = threading.Lock()

    # Storage primitives ------------------------------------------------

    def _read_blob(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def _write_blob(self, blob: Dict[str, Any]) -> None:
        raise NotImplementedError

    def _blob(self) -> Dict[str, Any]:
        blob = self._read_blob() or {}
        blob.setdefault('categories', {})
        blob.setdefault('default_assignees', dict(DEFAULT_ASSIGNEES))
        return blob

    # Public API ---------------------------------------------------------

    def load(self, key: str) -> Optional[Template]:
        """Stored template for a category, or None"""
        with self._lock:
            data = self._blob()['categories'].get(key)
        return Template.from_dict(data) if data else None

    def save(self, key: str, template: Template) -> None:
        """Persist a template under a category key"""
        with self._lock:
            blob = self._blob()
            blob['categories'][key] = template.to_dict()
            self._write_blob(blob)
        logger.info(f"Saved template for category '{key}'", extra={'category': key})

    def get_template(self, category: str) -> Template:
        """Stored template, else built-in one, else the Backend default"""
        stored = self.load(category)
        if stored:
            return stored

        defaults = default_templates()
        return defaults.get(category, defaults[Category.BACKEND.value])

    def all_templates(self) -> Dict[str, Template]:
        """Built-in templates overlaid with stored ones"""
        templates = default_templates()
        with self._lock:
            stored = self._blob()['categories']
        for key, data in stored.items():
            templates[key] = Template.from_dict(data)
        return templates

    def default_assignee(self, assignee_rule: str) -> Optional[str]:
        """Email for an assignee rule (falls back to the backend team)"""
        with self._lock:
            assignees = self._blob()['default_assignees']
        return assignees.get(assignee_rule) or assignees.get('backend-team')

    def update_default_assignees(self, assignees: Dict[str, str]) -> None:
        with self._lock:
            blob = self._blob()
            blob['default_assignees'].update(assignees)
            self._write_blob(blob)


class InMemoryTemplateStore(TemplateStore):
    """Process-local store (tests, stateless deployments)"""

    def __init__(self, initial: Optional[Dict[str, Template]] = None):
        super().__init__()
        self._data: Dict[str, Any] = {
            'categories': {key: t.to_dict() for key, t in (initial or {}).items()},
            'default_assignees': dict(DEFAULT_ASSIGNEES)
        }

    def _read_blob(self) -> Optional[Dict[str, Any]]:
        return json.loads(json.dumps(self._data))

    def _write_blob(self, blob: Dict[str, Any]) -> None:
        self._data = json.loads(json.dumps(blob))


class JsonFileTemplateStore(TemplateStore):
    """Store backed by a single JSON file"""

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)

    def _read_blob(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise TemplateStoreException(
                f"Failed to read template store {self.path}: {str(e)}",
                error_code=ErrorCodeRegistry.ERR_DATA_TEMPLATE_STORE,
                original_exception=e
            )

    def _write_blob(self, blob: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(blob, f, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError as e:
            raise TemplateStoreException(
                f"Failed to write template store {self.path}: {str(e)}",
                error_code=ErrorCodeRegistry.ERR_DATA_TEMPLATE_STORE,
                original_exception=e
            )
