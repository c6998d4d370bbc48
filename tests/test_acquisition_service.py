# /tests/test_acquisition_service.py

import asyncio
import json
from datetime import datetime, timezone

import pytest
import httpx

from app.models.dashboard_model import Endpoint, FailureKind
from app.services import fallback_data
from app.services.acquisition_service import (
    DashboardController,
    derive_error_message,
    key_for,
    normalize_name,
)
from app.services.dashboard_state import FetchFailed, FetchStarted, FetchSucceeded

ALL_ENDPOINTS = [endpoint.value for endpoint in Endpoint]
NOW = datetime(2025, 8, 17, 12, 0, tzinfo=timezone.utc)


def make_controller(handler, timeout: float = 5) -> DashboardController:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://gateway.test")
    return DashboardController(client, timeout=timeout)


# --- Unit Tests for Name Handling ---

def test_normalize_name_strips_one_leading_slash():
    assert normalize_name("/users") == "users"
    assert normalize_name(Endpoint.MINTS) == "mints"
    assert normalize_name("") == ""


def test_normalize_name_rejects_unknown_endpoints():
    with pytest.raises(ValueError):
        normalize_name("/admin")


def test_empty_name_maps_to_stats_key():
    assert key_for("") == "stats"
    assert key_for("/") == "stats"
    assert key_for("/collections") == "collections"


# --- Unit Tests for Error Message Precedence ---

def test_upstream_message_wins_over_everything():
    assert derive_error_message(FailureKind.TIMEOUT, "API returned 502: Bad Gateway", "x") == "API returned 502: Bad Gateway"


def test_timeout_message():
    assert derive_error_message(FailureKind.TIMEOUT, None, "cancelled") == "Request timed out after 15 seconds"


def test_failed_to_fetch_text_maps_to_network_message():
    assert derive_error_message(FailureKind.HTTP, None, "TypeError: Failed to fetch") == "Network error - check your connection"
    assert derive_error_message(FailureKind.NETWORK, None, "refused") == "Network error - check your connection"


def test_raw_then_unknown_message():
    assert derive_error_message(FailureKind.HTTP, None, "HTTP error! status: 503") == "HTTP error! status: 503"
    assert derive_error_message(FailureKind.PARSE, None, None) == "Unknown error occurred"
    assert derive_error_message(FailureKind.PARSE, "", "") == "Unknown error occurred"


# --- Controller Tests ---

@pytest.mark.asyncio
@pytest.mark.parametrize("name", ALL_ENDPOINTS)
async def test_success_stores_body_and_clears_error(name):
    body = {"endpoint": name, "items": [1, 2, 3]}
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        return httpx.Response(200, json=body)

    controller = make_controller(handler)
    controller.apply(FetchFailed(key="other", kind=FailureKind.HTTP, message="stale error"))

    await controller.fetch_endpoint(name)

    assert seen["path"] == f"/api/blueshift/{name}"
    assert controller.state.data[name] == body
    assert controller.state.error is None
    assert controller.state.last_updated is not None
    assert controller.state.loading is False


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["users", "stats", "collections"])
async def test_failure_substitutes_fallback(name):
    def handler(request):
        return httpx.Response(502, json={"error": "API returned 502: Bad Gateway"})

    controller = make_controller(handler)
    controller.apply(FetchSucceeded(key=name, value={"live": True}, at=NOW))

    await controller.fetch_endpoint(f"/{name}")

    assert controller.state.data[name] == fallback_data.get_fallback(name)
    assert controller.state.error == "API returned 502: Bad Gateway"


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["mints", "totals"])
async def test_failure_without_fallback_leaves_slot_unset(name):
    def handler(request):
        return httpx.Response(500, json={"error": "Failed to fetch from Blueshift API", "details": "down"})

    controller = make_controller(handler)
    await controller.fetch_endpoint(name)

    assert name not in controller.state.data
    assert controller.state.error == "Failed to fetch from Blueshift API"


@pytest.mark.asyncio
async def test_failure_without_fallback_keeps_previous_value():
    def handler(request):
        return httpx.Response(503, content=b"")

    controller = make_controller(handler)
    controller.apply(FetchSucceeded(key="mints", value=[{"month": "May", "mints": 45}], at=NOW))

    await controller.fetch_endpoint("mints")

    assert controller.state.data["mints"] == [{"month": "May", "mints": 45}]
    assert controller.state.error == "HTTP error! status: 503"


@pytest.mark.asyncio
async def test_timeout_aborts_and_sets_timeout_message():
    cancelled = asyncio.Event()

    async def handler(request):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return httpx.Response(200, json={})

    controller = make_controller(handler, timeout=0.05)
    await controller.fetch_endpoint("totals")

    assert cancelled.is_set()
    assert controller.state.error == "Request timed out after 15 seconds"
    assert "totals" not in controller.state.data


@pytest.mark.asyncio
async def test_network_error_message_and_fallback():
    def handler(request):
        raise httpx.ConnectError("Name or service not known", request=request)

    controller = make_controller(handler)
    await controller.fetch_endpoint("users")

    assert controller.state.error == "Network error - check your connection"
    assert controller.state.data["users"] == fallback_data.FALLBACK_USERS


@pytest.mark.asyncio
async def test_malformed_json_is_a_parse_failure():
    def handler(request):
        return httpx.Response(200, content=b"{not json")

    controller = make_controller(handler)
    outcome = await controller.acquire("collections")

    assert isinstance(outcome, FetchFailed)
    assert outcome.kind == FailureKind.PARSE
    assert outcome.message
    assert outcome.fallback == fallback_data.FALLBACK_COLLECTIONS


@pytest.mark.asyncio
async def test_acquire_does_not_touch_state():
    def handler(request):
        return httpx.Response(200, json=[1])

    controller = make_controller(handler)
    outcome = await controller.acquire("mints")

    assert isinstance(outcome, FetchSucceeded)
    assert controller.state.data == {}
    assert controller.history == []


@pytest.mark.asyncio
async def test_empty_name_is_stored_under_stats():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        return httpx.Response(200, json={"total": 7})

    controller = make_controller(handler)
    await controller.fetch_endpoint("")

    assert seen["path"] == "/api/blueshift/"
    assert controller.state.data == {"stats": {"total": 7}}


@pytest.mark.asyncio
async def test_empty_name_failure_gets_no_fallback():
    def handler(request):
        return httpx.Response(404, json={"detail": "Not Found"})

    controller = make_controller(handler)
    await controller.fetch_endpoint("")

    assert "stats" not in controller.state.data
    assert controller.state.error == "HTTP error! status: 404"


@pytest.mark.asyncio
async def test_unknown_name_raises_before_any_request():
    def handler(request):
        raise AssertionError("no request expected")

    controller = make_controller(handler)
    with pytest.raises(ValueError):
        await controller.fetch_endpoint("/wallets")
    assert controller.history == []


# --- Concurrency: last completion wins ---

def gated_handler(gates, responses):
    async def handler(request):
        name = request.url.path.rsplit("/", 1)[-1]
        await gates[name].wait()
        status_code, body = responses[name]
        return httpx.Response(status_code, content=json.dumps(body).encode())
    return handler


@pytest.mark.asyncio
@pytest.mark.parametrize("completion_order", [("users", "stats"), ("stats", "users")])
async def test_error_state_reflects_last_completed_call(completion_order):
    gates = {"users": asyncio.Event(), "stats": asyncio.Event()}
    responses = {
        "users": (500, {"error": "API returned 500: Internal Server Error"}),
        "stats": (200, {"total": 232, "collections": []}),
    }
    controller = make_controller(gated_handler(gates, responses))

    task = asyncio.create_task(controller.refresh_all(["users", "stats"]))
    await asyncio.sleep(0.01)
    assert controller.state.loading is True

    for name in completion_order:
        gates[name].set()
        await asyncio.sleep(0.01)
    await task

    completions = [event for event in controller.history if not isinstance(event, FetchStarted)]
    assert [event.key for event in completions] == list(completion_order)

    last = completions[-1]
    expected_error = last.message if isinstance(last, FetchFailed) else None
    assert controller.state.error == expected_error
    # Both slots are populated either way: live stats, fallback users.
    assert controller.state.data["stats"] == {"total": 232, "collections": []}
    assert controller.state.data["users"] == fallback_data.FALLBACK_USERS
    assert controller.state.loading is False


@pytest.mark.asyncio
async def test_refresh_all_defaults_to_stats_collections_users():
    requested = []

    def handler(request):
        requested.append(request.url.path)
        return httpx.Response(200, json=[])

    controller = make_controller(handler)
    await controller.refresh_all()

    assert sorted(requested) == ["/api/blueshift/collections", "/api/blueshift/stats", "/api/blueshift/users"]
    assert set(controller.state.data) == {"stats", "collections", "users"}


@pytest.mark.asyncio
async def test_unexpected_exception_still_completes_the_fetch():
    def handler(request):
        raise ValueError("Out of range float values are not JSON compliant")

    controller = make_controller(handler)
    await controller.fetch_endpoint("stats")

    assert controller.state.loading is False
    assert controller.state.error == "Out of range float values are not JSON compliant"
    assert controller.state.data["stats"] == fallback_data.FALLBACK_STATS
    failure = controller.history[-1]
    assert isinstance(failure, FetchFailed)
    assert failure.kind == FailureKind.UNKNOWN


@pytest.mark.asyncio
async def test_non_standard_json_constants_are_a_parse_failure():
    def handler(request):
        return httpx.Response(200, content=b'[{"user_address": "abc", "total_mints": Infinity}]')

    controller = make_controller(handler)
    await controller.fetch_endpoint("users")

    assert controller.state.loading is False
    assert controller.history[-1].kind == FailureKind.PARSE
    assert controller.state.data["users"] == fallback_data.FALLBACK_USERS
