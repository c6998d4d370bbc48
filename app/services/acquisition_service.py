# /app/services/acquisition_service.py

"""
The dashboard's data acquisition controller.

It fetches the named upstream endpoints through the proxy gateway, each
call under its own deadline. Every call produces one discrete outcome
(`FetchSucceeded` or `FetchFailed`). The controller is the only place that
applies outcomes to the dashboard state, in the order they arrive. When
several calls are in flight, the last one to complete decides the error
message, whichever endpoint it belongs to.
"""

import asyncio
from collections import deque
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Union

import httpx
from fastapi import Request

from .. import config
from ..models.dashboard_model import Endpoint, FailureKind
from .dashboard_state import (
    DashboardEvent,
    DashboardState,
    FetchFailed,
    FetchOutcome,
    FetchStarted,
    FetchSucceeded,
    apply_event,
)
from .fallback_data import get_fallback
from .proxy_service import loads_strict

# --- Constants ---
TIMEOUT_MESSAGE = f"Request timed out after {config.FETCH_TIMEOUT_SECONDS:g} seconds"
NETWORK_MESSAGE = "Network error - check your connection"
UNKNOWN_MESSAGE = "Unknown error occurred"

# An empty endpoint name is the gateway root; its result is filed under "stats".
ROOT_KEY = Endpoint.STATS.value
DEFAULT_REFRESH = (Endpoint.STATS, Endpoint.COLLECTIONS, Endpoint.USERS)

REQUEST_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

_ENDPOINT_NAMES = {endpoint.value for endpoint in Endpoint}


# --- PURE HELPERS ---

def normalize_name(name: Union[str, Endpoint]) -> str:
    """
    Strips one leading '/' and validates the name against the endpoint set.
    Returns '' for the root alias. Raises ValueError for anything else.
    """
    value = name.value if isinstance(name, Endpoint) else str(name)
    if value.startswith("/"):
        value = value[1:]
    if value and value not in _ENDPOINT_NAMES:
        raise ValueError(f"Unknown endpoint '{name}'. Expected one of: {sorted(_ENDPOINT_NAMES)}")
    return value


def key_for(name: Union[str, Endpoint]) -> str:
    """The accumulated-state key an endpoint name is stored under."""
    return normalize_name(name) or ROOT_KEY


def derive_error_message(
    kind: FailureKind,
    upstream_message: Optional[str] = None,
    raw_message: Optional[str] = None,
) -> str:
    """
    Turns a failure into the message shown to the user. Precedence:
    upstream message, timeout, network, raw message, unknown.
    """
    if upstream_message:
        return upstream_message
    if kind == FailureKind.TIMEOUT:
        return TIMEOUT_MESSAGE
    if kind == FailureKind.NETWORK or (raw_message and "Failed to fetch" in raw_message):
        return NETWORK_MESSAGE
    if raw_message:
        return raw_message
    return UNKNOWN_MESSAGE


def _extract_upstream_error(response: httpx.Response) -> Optional[str]:
    # Gateway failures carry {"error": "..."}; anything else yields no message.
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return None


# --- CONTROLLER ---

class DashboardController:
    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: Optional[float] = None,
        history_size: int = 100,
    ):
        self._client = client
        self.timeout = timeout if timeout is not None else config.FETCH_TIMEOUT_SECONDS
        self._state = DashboardState()
        self._history = deque(maxlen=history_size)

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def history(self) -> List[DashboardEvent]:
        """The most recently applied events, oldest first."""
        return list(self._history)

    def apply(self, event: DashboardEvent) -> DashboardState:
        """The single point where the dashboard state changes."""
        self._state = apply_event(self._state, event)
        self._history.append(event)
        return self._state

    async def acquire(self, name: Union[str, Endpoint]) -> FetchOutcome:
        """Fetches one endpoint through the gateway and reports the outcome without touching state."""
        endpoint = normalize_name(name)
        key = endpoint or ROOT_KEY
        path = f"{config.PROXY_PREFIX}/{endpoint}"
        print(f"INFO: Fetching '{key}' from proxy URL: {path}")

        # 1. Call the gateway under the per-call deadline.
        try:
            response = await asyncio.wait_for(
                self._client.get(path, headers=REQUEST_HEADERS),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            return self._failure(endpoint, key, FailureKind.TIMEOUT, raw_message=str(e))
        except httpx.TransportError as e:
            return self._failure(endpoint, key, FailureKind.NETWORK, raw_message=f"Failed to fetch: {e}")
        except httpx.HTTPError as e:
            return self._failure(endpoint, key, FailureKind.HTTP, raw_message=str(e))
        except Exception as e:
            # e.g. an in-process gateway that raised instead of answering
            return self._failure(endpoint, key, FailureKind.UNKNOWN, raw_message=str(e) or type(e).__name__)

        print(f"INFO: Response status for '{key}': {response.status_code}")

        # 2. A non-2xx answer is a failure; prefer the gateway's own message.
        if not response.is_success:
            return self._failure(
                endpoint,
                key,
                FailureKind.HTTP,
                upstream_message=_extract_upstream_error(response),
                raw_message=f"HTTP error! status: {response.status_code}",
            )

        # 3. Decode the body. Only standard JSON counts as a success.
        try:
            value = loads_strict(response.text)
        except ValueError as e:
            return self._failure(endpoint, key, FailureKind.PARSE, raw_message=str(e))

        return FetchSucceeded(key=key, value=value, at=datetime.now(timezone.utc))

    def _failure(
        self,
        endpoint: str,
        key: str,
        kind: FailureKind,
        upstream_message: Optional[str] = None,
        raw_message: Optional[str] = None,
    ) -> FetchFailed:
        message = derive_error_message(kind, upstream_message, raw_message)
        print(f"ERROR fetching '{key}' ({kind.value}): {raw_message or message}")

        # The root alias is filed under "stats" but never gets the stats fallback.
        fallback: Any = get_fallback(endpoint) if endpoint else None
        if fallback is not None:
            print(f"INFO: Using fallback sample data for '{key}' endpoint")
        return FetchFailed(key=key, kind=kind, message=message, fallback=fallback)

    async def fetch_endpoint(self, name: Union[str, Endpoint]) -> None:
        """
        Marks `name` as loading, acquires it, and applies the outcome. Returns
        nothing; callers observe the result through `state`.
        """
        key = key_for(name)
        self.apply(FetchStarted(key=key))
        outcome = await self.acquire(name)
        self.apply(outcome)

    async def refresh_all(self, names: Iterable[Union[str, Endpoint]] = DEFAULT_REFRESH) -> None:
        """Fetches every endpoint in `names` concurrently."""
        await asyncio.gather(*(self.fetch_endpoint(name) for name in names))


# --- CLIENT FACTORY & DEPENDENCY PROVIDER ---

def create_gateway_client(app: Any = None, base_url: Optional[str] = None) -> httpx.AsyncClient:
    """
    Builds the HTTP client the controller uses to reach the gateway. With a
    base URL it goes over the network; otherwise it calls `app` in-process.
    """
    base_url = base_url or config.DASHBOARD_GATEWAY_URL
    # The per-call deadline is enforced by the controller, not by httpx.
    if base_url:
        return httpx.AsyncClient(base_url=base_url, timeout=None)
    if app is None:
        raise ValueError("An ASGI app is required when no gateway URL is configured.")
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://dashboard.internal",
        timeout=None,
    )


def get_dashboard_controller(request: Request) -> DashboardController:
    """FastAPI dependency that provides the controller created at startup."""
    return request.app.state.dashboard_controller
