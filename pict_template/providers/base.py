# ==============================
# Template Expression Provider
# ==============================
"""
Base contract for template expression providers.

Rules:
- A provider registers one or more delimiter pairs with the host (add_pattern).
- The host calls render / render_async with the text between the delimiters.
- Address resolution is delegated to the host's manifest; a miss is UNDEFINED,
  never an exception.
- Providers hold no per-call state: record, context, scope and state are passed in.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from pict_template.contracts.template_schema import RenderCallback
from pict_template.logging.logger import LogContext, with_context


# ==============================
# Capability Protocol
# ==============================
@runtime_checkable
class TemplateExpressionProvider(Protocol):
    """Anything the host can dispatch a matched span to."""

    def render(
        self,
        template_hash: str,
        record: Any,
        context_array: Optional[List[Any]] = None,
        scope: Any = None,
        state: Any = None,
    ) -> str: ...

    def render_async(
        self,
        template_hash: str,
        record: Any,
        callback: RenderCallback,
        context_array: Optional[List[Any]] = None,
        scope: Any = None,
        state: Any = None,
    ) -> None: ...


# ==============================
# Base Provider
# ==============================
class PictTemplateExpression:
    """
    Base class for template expression providers.

    Subclasses call add_pattern(...) in __init__ and override render
    (or render_async, when the work is genuinely asynchronous).
    """

    template_hash: str = "Default"
    service_type: str = "PictTemplate"

    def __init__(
        self,
        pict: Any,
        options: Optional[Dict[str, Any]] = None,
        service_hash: Optional[str] = None,
    ) -> None:
        self.fable = pict
        self.pict = pict
        self.options: Dict[str, Any] = dict(options or {})
        self.uuid = str(uuid.uuid4())
        self.service_hash = service_hash or self.template_hash
        self.log = with_context(
            logging.getLogger(f"pict.template.{self.service_hash}"),
            LogContext(provider=type(self).__name__, service_hash=self.service_hash),
        )

    # ---- rendering ----

    def render(
        self,
        template_hash: str,
        record: Any,
        context_array: Optional[List[Any]] = None,
        scope: Any = None,
        state: Any = None,
    ) -> str:
        """
        Render a template expression.

        template_hash: the text between the start and end delimiters
        record: the data object for this render pass
        context_array: auxiliary context objects, addressable as Context[n]
        scope: sticky object for carrying state across nested renders
        state: catchall state object
        """
        return ""

    def render_async(
        self,
        template_hash: str,
        record: Any,
        callback: RenderCallback,
        context_array: Optional[List[Any]] = None,
        scope: Any = None,
        state: Any = None,
    ) -> None:
        """
        Render a template expression and deliver the result to an error-first callback.

        The default computes render(...) and calls back on the same turn.
        """
        return callback(None, self.render(template_hash, record, context_array, scope, state))

    def render_future(
        self,
        template_hash: str,
        record: Any,
        context_array: Optional[List[Any]] = None,
        scope: Any = None,
        state: Any = None,
    ) -> "Future[str]":
        """Future form of render_async; already resolved for synchronous providers."""
        future: "Future[str]" = Future()

        def deliver(error: Optional[BaseException], content: Optional[str] = None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(content if content is not None else "")

        try:
            self.render_async(template_hash, record, deliver, context_array, scope, state)
        except Exception as exc:
            if future.done():
                raise
            future.set_exception(exc)
        return future

    # ---- registration ----

    def add_pattern(self, match_start: str, match_end: str) -> None:
        """
        Register a delimiter pair. Anything between the two is handed to render as the template hash.
        """
        self.pict.meta_template.add_pattern_both(match_start, match_end, self.render, self.render_async, self)
        self.log.debug("Added pattern %s...%s", match_start, match_end)

    # ---- address resolution ----

    def build_root_data_object(
        self,
        record: Any,
        context_array: Any = None,
        root_data_object: Any = None,
    ) -> Dict[str, Any]:
        """
        Merge host refs, context and record over an optional caller-supplied root.

        The caller's mapping is copied; Pict/Fable/AppData/Bundle/Context/Record always
        reflect the host and this call's arguments.
        """
        if isinstance(context_array, list):
            context = context_array
        elif isinstance(context_array, tuple):
            context = list(context_array)
        else:
            context = [self.pict]
        root: Dict[str, Any] = dict(root_data_object) if isinstance(root_data_object, Mapping) else {}

        root["Pict"] = self.pict
        root["Fable"] = self.pict
        root["AppData"] = getattr(self.pict, "app_data", None)
        root["Bundle"] = getattr(self.pict, "bundle", None)
        root["Context"] = context
        root["Record"] = record
        return root

    def resolve_state_from_address(
        self,
        address: str,
        record: Any = None,
        context_array: Any = None,
        root_data_object: Any = None,
        scope: Any = None,
        state: Any = None,
    ) -> Any:
        """
        Read a value from the merged root data object using a dotted address.

        Returns UNDEFINED when the address does not resolve.
        """
        root = self.build_root_data_object(record, context_array, root_data_object)
        return self.pict.manifest.get_value_by_hash(root, address)
