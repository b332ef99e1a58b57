from __future__ import annotations

"""
Error types shared by the generator and the runtime bridge.

Two very different failure policies live side by side:

- generation time: a malformed descriptor raises `GenerationFatal`, which
  carries the descriptor path of the offending field and aborts the whole pass;
- run time: conversions never raise into a script. Converters return the
  `NO_VALUE` sentinel and script-facing callables turn it into the null
  dynamic value.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping


@dataclass
class StreamlineError(Exception):
    """
    Structured error with a short machine-readable code.

    Supported call patterns:

        StreamlineError("simple message")
        StreamlineError("message", code="some_code", context={...})
    """

    code: str
    message: str
    context: Dict[str, Any]

    default_code = "streamline_error"

    def __init__(self, message: Any = "", **kwargs: Any) -> None:
        code = str(kwargs.pop("code", self.default_code))
        ctx = kwargs.pop("context", None)
        if kwargs:
            raise TypeError(f"unexpected keyword arguments: {sorted(kwargs)}")
        context: Dict[str, Any] = dict(ctx) if isinstance(ctx, Mapping) else {}

        super().__init__(str(message))
        object.__setattr__(self, "code", code)
        object.__setattr__(self, "message", str(message))
        object.__setattr__(self, "context", context)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": dict(self.context),
        }


class GenerationFatal(StreamlineError):
    """A descriptor is malformed; binding generation must not continue."""

    default_code = "generation_fatal"

    def __init__(self, message: Any, *, path: str = "", **kwargs: Any) -> None:
        ctx = dict(kwargs.pop("context", None) or {})
        ctx.setdefault("path", path)
        super().__init__(message, context=ctx, **kwargs)

    @property
    def path(self) -> str:
        return str(self.context.get("path", ""))

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class ValidationError(StreamlineError, ValueError):
    """A typed value does not fit the host type it is being converted under."""

    default_code = "validation_error"


class RpcError(StreamlineError):
    """The remote call provider returned an error or a malformed response."""

    default_code = "rpc_error"


class _NoValue:
    """Sentinel for a failed dynamic conversion. Falsy, singleton, never a result."""

    _instance = None

    def __new__(cls) -> "_NoValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __reduce__(self) -> str:
        return "NO_VALUE"


NO_VALUE = _NoValue()


__all__ = [
    "StreamlineError",
    "GenerationFatal",
    "ValidationError",
    "RpcError",
    "NO_VALUE",
]
