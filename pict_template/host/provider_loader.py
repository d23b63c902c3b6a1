# ==============================
# Provider Loader & Registration
# ==============================
"""
Import-path based provider registration.

Responsibilities:
- Resolve "package.module:ClassName" (or "package.module.ClassName") to a class
- Register each class with a host via add_template
- Collect failures instead of raising, so one broken provider does not block the rest
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Any, List, Sequence

from pict_template.contracts.template_schema import RenderErrorCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderLoadError:
    path: str
    code: RenderErrorCode
    message: str


def import_provider(path: str) -> type:
    """
    Import a provider class from an import path.
    """
    raw = (path or "").strip()
    if ":" in raw:
        module_name, _, attr = raw.partition(":")
    else:
        module_name, _, attr = raw.rpartition(".")
    if not module_name or not attr:
        raise ValueError(f"Provider path must look like 'package.module:ClassName': {path!r}")

    module = importlib.import_module(module_name)
    try:
        target = getattr(module, attr)
    except AttributeError as exc:
        raise AttributeError(f"Module {module_name!r} has no provider {attr!r}") from exc
    if not isinstance(target, type):
        raise TypeError(f"Provider {path!r} is not a class")
    return target


def register_providers(pict: Any, paths: Sequence[str]) -> List[ProviderLoadError]:
    errors: List[ProviderLoadError] = []
    for path in paths:
        try:
            provider_cls = import_provider(path)
        except (ImportError, AttributeError, ValueError) as exc:
            errors.append(ProviderLoadError(path=path, code=RenderErrorCode.IMPORT_FAILED, message=str(exc)))
            logger.warning("Failed to import provider %s: %s", path, exc)
            continue
        except TypeError as exc:
            errors.append(ProviderLoadError(path=path, code=RenderErrorCode.NOT_A_PROVIDER, message=str(exc)))
            logger.warning("Failed to import provider %s: %s", path, exc)
            continue

        try:
            pict.add_template(provider_cls)
        except TypeError as exc:
            errors.append(ProviderLoadError(path=path, code=RenderErrorCode.NOT_A_PROVIDER, message=str(exc)))
            logger.warning("Failed to register provider %s: %s", path, exc)
        except Exception as exc:  # provider __init__ is user code
            errors.append(ProviderLoadError(path=path, code=RenderErrorCode.PROVIDER_ERROR, message=str(exc)))
            logger.warning("Failed to register provider %s: %s", path, exc)
    return errors
