# /app/main.py

# --- Core FastAPI Imports ---
import asyncio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

# --- Application-specific Imports ---
from . import config
from .routers import dashboard_router, proxy_router
from .services.acquisition_service import DashboardController, create_gateway_client


# --- Application Lifecycle Management ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup plays the role of the dashboard "mount": an empty state and
    # one background fetch of the default endpoints.
    client = create_gateway_client(app=app)
    controller = DashboardController(client)
    app.state.dashboard_controller = controller

    initial_fetch = None
    if config.FETCH_ON_STARTUP:
        initial_fetch = asyncio.create_task(controller.refresh_all())

    yield

    # Shutdown: drop any fetch still in flight and release the client.
    if initial_fetch is not None and not initial_fetch.done():
        initial_fetch.cancel()
        try:
            await initial_fetch
        except asyncio.CancelledError:
            pass
    await client.aclose()


# --- FastAPI Application Instance Creation ---
app = FastAPI(
    title="Blueshift Dashboard API",
    description="Proxy gateway and data acquisition backend for the Blueshift mint statistics dashboard.",
    version="1.0.0",
    lifespan=lifespan
)

# --- Middleware Configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- API Router Inclusion ---
app.include_router(proxy_router.router, prefix=config.PROXY_PREFIX, tags=["Proxy"])
app.include_router(dashboard_router.router, prefix="/api/dashboard", tags=["Dashboard"])


# --- Root / Health Check Endpoint ---
@app.get("/", tags=["Health Check"])
async def read_root():
    """A simple health check endpoint to confirm the API is online."""
    return {"status": "Blueshift Dashboard backend is running!", "version": app.version}
