"""Collected validation results shared by game and tournament validators.

Validators report every problem they find in one pass instead of stopping
at the first. Errors make a result invalid, warnings never do.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, computed_field

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pydantic import ValidationError


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def from_messages(cls, errors: Iterable[str] = (), warnings: Iterable[str] = ()) -> ValidationResult:
        return cls(errors=tuple(errors), warnings=tuple(warnings))

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Return a result holding the problems of both, in order."""
        return ValidationResult(errors=self.errors + other.errors, warnings=self.warnings + other.warnings)


def format_validation_errors(exc: ValidationError) -> list[str]:
    """Render pydantic errors as 'field.path: message' strings."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages
