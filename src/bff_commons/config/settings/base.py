"""Config settings – Settings base class."""
from __future__ import annotations

import dataclasses

from bff_commons.config.errors import InvalidSettingValueError


@dataclasses.dataclass
class Settings:
    """Base class for 12-factor settings.

    Subclasses declare their environment prefix in ``_prefix``; a field
    ``batch_size`` on a class with prefix ``OUTBOX`` is read from
    ``OUTBOX_BATCH_SIZE``.
    """

    _prefix: dataclasses.ClassVar[str] = ""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override to add cross-field validation."""

    def _require_positive(self, *names: str) -> None:
        for name in names:
            value = getattr(self, name)
            if value <= 0:
                raise InvalidSettingValueError(self._env_key(name), value, "must be greater than zero")

    @classmethod
    def _env_key(cls, field_name: str) -> str:
        return f"{cls._prefix}_{field_name}".upper().lstrip("_")


__all__ = ["Settings"]
