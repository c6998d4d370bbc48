# /app/services/dashboard_state.py

"""
The dashboard's accumulated state and the events that change it.

State is an immutable pydantic model. Every change is a pure transition
`apply_event(old_state, event) -> new_state`, so the order in which the
controller applies completions fully determines the outcome.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.dashboard_model import FailureKind


# --- Events ---

class FetchStarted(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str


class FetchSucceeded(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: Any
    at: datetime


class FetchFailed(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    kind: FailureKind
    message: str
    # None means "leave whatever is stored under `key` untouched".
    fallback: Optional[Any] = None


FetchOutcome = Union[FetchSucceeded, FetchFailed]
DashboardEvent = Union[FetchStarted, FetchSucceeded, FetchFailed]


# --- State ---

class DashboardState(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: Dict[str, Any] = Field(default_factory=dict, validate_default=True)
    error: Optional[str] = None
    in_flight: int = 0
    last_updated: Optional[datetime] = None

    @field_validator("data")
    @classmethod
    def _freeze_data(cls, value: Dict[str, Any]) -> Mapping[str, Any]:
        # A read-only view; replacing an entry goes through apply_event.
        return MappingProxyType(dict(value))

    @property
    def loading(self) -> bool:
        return self.in_flight > 0


def _with_entry(data: Mapping[str, Any], key: str, value: Any) -> Mapping[str, Any]:
    merged = dict(data)
    merged[key] = value
    return MappingProxyType(merged)


def apply_event(state: DashboardState, event: DashboardEvent) -> DashboardState:
    """Returns the state that results from applying `event` to `state`."""
    if isinstance(event, FetchStarted):
        return state.model_copy(update={"in_flight": state.in_flight + 1, "error": None})

    remaining = max(state.in_flight - 1, 0)

    if isinstance(event, FetchSucceeded):
        return state.model_copy(update={
            "data": _with_entry(state.data, event.key, event.value),
            "error": None,
            "last_updated": event.at,
            "in_flight": remaining,
        })

    if isinstance(event, FetchFailed):
        update: Dict[str, Any] = {"error": event.message, "in_flight": remaining}
        if event.fallback is not None:
            update["data"] = _with_entry(state.data, event.key, event.fallback)
        return state.model_copy(update=update)

    raise TypeError(f"Unsupported dashboard event: {type(event).__name__}")
