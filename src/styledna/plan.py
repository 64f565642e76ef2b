"""RequestPlan: explainable output of the collaborator request planners."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from styledna.serde import to_plain_data


def _excluded_to_warning(item: ExcludedItem) -> str:
    """Format one excluded item as an unused-parameter warning."""
    return f"unused parameter '{item.description}': {item.reason}"


@dataclass(frozen=True, slots=True)
class ExcludedItem:
    """An item excluded from the request, with a reason."""

    description: str
    reason: str


@dataclass(frozen=True, slots=True)
class RequestPlan:
    """Provider request payload plus what was included, excluded and why.

    Planners never call the provider; they only build the keyword arguments
    for one SDK call.
    """

    request: dict[str, Any]

    included: tuple[str, ...] = ()
    excluded: tuple[ExcludedItem, ...] = ()
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Ensure the request payload uses plain container types."""
        object.__setattr__(self, "request", to_plain_data(self.request))
        object.__setattr__(self, "included", tuple(self.included))
        object.__setattr__(self, "excluded", tuple(self.excluded))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def unused_parameter_warnings(self) -> tuple[str, ...]:
        """Return warning messages derived from excluded (unused) items."""
        return tuple(_excluded_to_warning(item) for item in self.excluded)

    def warning_messages(self, *, include_unused_parameters: bool = True) -> tuple[str, ...]:
        """Return warnings, optionally including excluded unused-parameter warnings."""
        if not include_unused_parameters:
            return self.warnings
        return (*self.warnings, *self.unused_parameter_warnings())
