# /app/routers/proxy_router.py

# --- Core FastAPI Imports ---
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

# --- Service Imports ---
from ..services.proxy_service import ProxyGateway, get_proxy_gateway

router = APIRouter()


@router.get(
    "/{endpoint:path}",
    summary="Proxy a GET to the Blueshift API",
    description="Forwards the remaining path to the upstream API and relays its JSON body and status."
)
async def proxy_get(
    endpoint: str,
    gateway: ProxyGateway = Depends(get_proxy_gateway)
):
    """
    Thin router layer: the gateway service already maps every outcome to a
    status code and a JSON body, so this only wraps it in a response.
    """
    status_code, payload = await gateway.forward(endpoint.split("/"))
    return JSONResponse(content=payload, status_code=status_code)
