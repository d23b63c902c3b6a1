# ==============================
# Host Environment
# ==============================
"""
Reference host environment for template expression providers.

Exposes what providers rely on:
- meta_template: pattern table (add_pattern_both) + scanner
- manifest: address resolver (get_value_by_hash)
- app_data / bundle: shared data surfaced to templates as AppData / Bundle

And what callers rely on:
- add_template(provider_cls) to instantiate and register a provider
- parse_template(...) to render a string, synchronously or through a callback
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Dict, List, Optional

from pict_template.config.schema import Settings
from pict_template.contracts.template_schema import RenderCallback
from pict_template.host.address import AddressResolver
from pict_template.host.meta_template import MetaTemplate
from pict_template.host.provider_loader import ProviderLoadError, register_providers
from pict_template.logging.logger import LogContext, with_context
from pict_template.providers.base import TemplateExpressionProvider


class Pict:
    """
    In-process template host.

    Owns the pattern table (meta_template), the address resolver (manifest) and
    the registered provider instances (services). app_data and bundle are layered
    over the host section of the settings and exposed to providers as AppData and
    Bundle.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        app_data: Optional[Dict[str, Any]] = None,
        bundle: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.app_data: Dict[str, Any] = dict(self.settings.host.app_data)
        self.app_data.update(app_data or {})
        self.bundle: Dict[str, Any] = dict(self.settings.host.bundle)
        self.bundle.update(bundle or {})

        self.meta_template = MetaTemplate()
        self.manifest = AddressResolver()
        self.services: Dict[str, Any] = {}
        self.load_errors: List[ProviderLoadError] = []
        self.log = with_context(logging.getLogger("pict"), LogContext(product=self.settings.app.product))

    @classmethod
    def from_settings(cls, settings: Settings) -> "Pict":
        """
        Build a host and register the providers listed in settings.templates.providers.
        Registration failures are logged and kept on load_errors.
        """
        pict = cls(settings)
        pict.load_errors = register_providers(pict, settings.templates.providers)
        return pict

    # ---- providers ----

    def add_template(
        self,
        provider_cls: type,
        options: Optional[Dict[str, Any]] = None,
        service_hash: Optional[str] = None,
    ) -> Any:
        if not isinstance(provider_cls, type):
            raise TypeError(f"add_template expects a provider class, got {provider_cls!r}")
        if not issubclass(provider_cls, TemplateExpressionProvider):
            raise TypeError(f"{provider_cls.__name__} does not implement render/render_async")
        provider = provider_cls(self, options, service_hash)

        key = self._unique_hash(service_hash or getattr(provider, "service_hash", None) or provider_cls.__name__)
        self.services[key] = provider
        self.log.info("Added template provider %s as %s", provider_cls.__name__, key)
        return provider

    def _unique_hash(self, base: str) -> str:
        if base not in self.services:
            return base
        n = 2
        while f"{base}-{n}" in self.services:
            n += 1
        return f"{base}-{n}"

    # ---- rendering ----

    def parse_template(
        self,
        template: str,
        record: Any = None,
        callback: Optional[RenderCallback] = None,
        context_array: Any = None,
        scope: Any = None,
        state: Any = None,
    ) -> Optional[str]:
        """
        Render a template string.

        Without a callback the rendered text is returned. With a callback, spans are
        rendered through each provider's render_async and callback(error, text) is
        invoked; the return value is None.
        """
        text = template if isinstance(template, str) else ("" if template is None else str(template))
        if callback is None:
            return self.meta_template.parse_string(text, record, context_array, scope, state)
        self.meta_template.parse_string_async(text, callback, record, context_array, scope, state)
        return None

    def parse_template_future(
        self,
        template: str,
        record: Any = None,
        context_array: Any = None,
        scope: Any = None,
        state: Any = None,
    ) -> "Future[str]":
        future: "Future[str]" = Future()

        def deliver(error: Optional[BaseException], content: Optional[str] = None) -> None:
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(content or "")

        self.parse_template(template, record, deliver, context_array, scope, state)
        return future
