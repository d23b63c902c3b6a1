# ==============================
# Template Contracts
# ==============================
"""
Template contracts for pict_template/.

These models define the shapes shared by providers and the host:
- UNDEFINED: the "address did not resolve" sentinel
- PatternDef: one registered start/end delimiter pair and its handlers
- RenderError / TemplateRenderError: errors as data, and their raisable wrapper

No host or provider logic lives here.
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ==============================
# Sentinel
# ==============================
class _Undefined:
    """Marker for an address that did not resolve. Falsy; renders as 'undefined'."""

    _instance: Optional["_Undefined"] = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "undefined"

    __str__ = __repr__

    def __copy__(self) -> "_Undefined":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "_Undefined":
        return self

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


def is_undefined(value: Any) -> bool:
    return value is UNDEFINED


# ==============================
# Typing
# ==============================
RenderCallback = Callable[[Optional[BaseException], Optional[str]], None]
# RenderCallback signature (error-first):
#   callback(error_or_none, content_or_none) -> None


# ==============================
# Enums
# ==============================
class RenderErrorCode(str, Enum):
    """Standard error codes for template rendering failures."""
    PROVIDER_ERROR = "provider_error"
    INVALID_PATTERN = "invalid_pattern"
    NOT_A_PROVIDER = "not_a_provider"
    IMPORT_FAILED = "import_failed"


# ==============================
# Models
# ==============================
class PatternDef(BaseModel):
    """
    A delimiter pair registered with the host's pattern table.

    render / render_async are the provider's bound entry points;
    owner is the provider instance they belong to.
    """
    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    start: str = Field(..., description="Start delimiter.")
    end: str = Field(..., description="End delimiter.")
    render: Callable[..., Any] = Field(..., description="Synchronous render entry point.")
    render_async: Callable[..., Any] = Field(..., description="Callback-style render entry point.")
    owner: Any = Field(default=None, description="Provider instance owning the handlers.")

    @field_validator("start", "end")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("Delimiters must be non-empty strings")
        return value


class RenderError(BaseModel):
    """Structured error for render failures. Errors are data, not control flow."""
    model_config = ConfigDict(extra="forbid")

    code: RenderErrorCode = Field(..., description="Standard render error code.")
    message: str = Field(..., description="Human readable message.")
    details: Dict[str, Any] = Field(default_factory=dict, description="Optional structured details.")


class TemplateRenderError(Exception):
    """Raisable carrier for a RenderError (delivered through error-first callbacks)."""

    def __init__(self, error: RenderError) -> None:
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> RenderErrorCode:
        return self.error.code

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        code: RenderErrorCode = RenderErrorCode.PROVIDER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> "TemplateRenderError":
        merged = {"exc": repr(exc)}
        merged.update(details or {})
        err = cls(RenderError(code=code, message=str(exc) or exc.__class__.__name__, details=merged))
        err.__cause__ = exc
        return err
