"""Kernel errors – BaseError, the root every library error derives from."""

from __future__ import annotations

import json
from typing import Any, ClassVar


class BaseError(Exception):
    """Error carrying a stable ``code``, an HTTP-equivalent ``status_code`` and a ``detail`` dict.

    Subclasses set ``default_code`` and ``status_code`` as class attributes;
    the FastAPI exception mapper, the idempotency service (when it records a
    FAILED outcome) and the retry classifier all read ``status_code``.

    ``cause`` is chained as ``__cause__`` and rendered with ``repr`` in
    :meth:`to_dict`, never as a traceback.
    """

    default_code: ClassVar[str] = "base_error"
    status_code: ClassVar[int] = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code else self.default_code
        self.detail: dict[str, Any] = dict(detail) if detail else {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message, "detail": self.detail}
        if self.cause is not None:
            body["cause"] = repr(self.cause)
        return body

    def to_json(self) -> str:
        """Single-line JSON of :meth:`to_dict`; non-JSON values fall back to ``str``."""
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


__all__ = ["BaseError"]
