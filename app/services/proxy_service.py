# /app/services/proxy_service.py

"""
The proxy gateway: relays a GET to the upstream Blueshift API from the
server side, where browser CORS restrictions do not apply.

The gateway never raises. Every outcome is a (status_code, json_body) pair:
- upstream 2xx      -> (200, upstream JSON verbatim)
- upstream non-2xx  -> (upstream status, {"error": "API returned <status>: <reason>"})
- any exception     -> (500, {"error": "Failed to fetch from <API>", "details": <message>})
"""

import json
from typing import Any, Iterable, Optional, Tuple, Union

import httpx

from .. import config

UPSTREAM_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def join_path(segments: Union[str, Iterable[str]]) -> str:
    """Joins path segments with '/', dropping empty segments."""
    if isinstance(segments, str):
        segments = segments.split("/")
    return "/".join(segment for segment in segments if segment)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Out of range float values are not JSON compliant: {name}")


def loads_strict(text: str) -> Any:
    """
    Parses standard JSON only. NaN and Infinity are rejected with a
    ValueError, because they cannot be re-encoded as a response body.
    """
    return json.loads(text, parse_constant=_reject_constant)


class ProxyGateway:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        api_name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.BLUESHIFT_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.UPSTREAM_TIMEOUT_SECONDS
        self.api_name = api_name or config.BLUESHIFT_API_NAME
        # Only set by tests; production uses the default network transport.
        self._transport = transport

    def build_url(self, segments: Union[str, Iterable[str]]) -> str:
        return f"{self.base_url}/{join_path(segments)}"

    async def forward(self, segments: Union[str, Iterable[str]]) -> Tuple[int, Any]:
        api_url = self.build_url(segments)
        print(f"INFO: Proxy fetch to: {api_url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(api_url, headers=UPSTREAM_HEADERS)

                if not response.is_success:
                    print(f"WARNING: Upstream response not ok: {response.status_code} {response.reason_phrase}")
                    return response.status_code, {
                        "error": f"API returned {response.status_code}: {response.reason_phrase}"
                    }

                data = loads_strict(response.text)
        except Exception as e:
            print(f"ERROR during proxy fetch to {api_url}: {e!r}")
            return 500, {
                "error": f"Failed to fetch from {self.api_name}",
                "details": str(e) or "Unknown error",
            }

        print(f"INFO: Successfully fetched data from {self.api_name}")
        return 200, data


# --- DEPENDENCY PROVIDER ---
_gateway_instance = ProxyGateway()


def get_proxy_gateway() -> ProxyGateway:
    """FastAPI dependency that provides the shared ProxyGateway."""
    return _gateway_instance
