# ==============================
# Testing Fixtures
# ==============================
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from pict_template.config.schema import Settings
from pict_template.host.environment import Pict
from pict_template.providers.base import PictTemplateExpression


class FixedTemplate(PictTemplateExpression):
    """Ignores its inputs; always renders the same text."""

    def __init__(self, pict: Any, options: Optional[dict] = None, service_hash: Optional[str] = None) -> None:
        super().__init__(pict, options, service_hash)
        self.add_pattern("{{", "}}")

    def render(self, template_hash, record, context_array=None, scope=None, state=None) -> str:
        return "THIS TEMPLATE MUSTACHE YOU SOME QUESTIONS"


class ContextTemplate(PictTemplateExpression):
    """Resolves the template hash as an address and reports what it found."""

    template_hash = "ContextMustache"

    def __init__(self, pict: Any, options: Optional[dict] = None, service_hash: Optional[str] = None) -> None:
        super().__init__(pict, options, service_hash)
        self.add_pattern("{{", "}}")

    def render(self, template_hash, record, context_array=None, scope=None, state=None) -> str:
        value = self.resolve_state_from_address(template_hash, record, context_array)
        return f"WE GOT {value} WHILE PARSING YOUR TEMPLATE"


class CustomRootTemplate(PictTemplateExpression):
    """Resolves against a caller-supplied partial root object."""

    template_hash = "CustomRoot"

    def __init__(self, pict: Any, options: Optional[dict] = None, service_hash: Optional[str] = None) -> None:
        super().__init__(pict, options, service_hash)
        self.add_pattern("{>", "<}")

    def render(self, template_hash, record, context_array=None, scope=None, state=None) -> str:
        value = self.resolve_state_from_address(
            template_hash, record, context_array, {"CustomObjectData": "Terminat0r"}
        )
        return f"WE GOT {value} WHILE PARSING YOUR TEMPLATE"


@pytest.fixture
def pict() -> Pict:
    """Fresh host with default settings and no providers."""
    return Pict(Settings())


@pytest.fixture
def callback_sink() -> List[Tuple[Any, Any]]:
    """Collects (error, content) pairs delivered to error-first callbacks."""
    return []


@pytest.fixture
def collect(callback_sink: List[Tuple[Any, Any]]):
    def _collect(error: Any, content: Any = None) -> None:
        callback_sink.append((error, content))

    return _collect
