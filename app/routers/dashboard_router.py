# /app/routers/dashboard_router.py

# --- Core FastAPI Imports ---
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from typing import List

# --- Service and Model Imports ---
from ..services import dashboard_service
from ..services.acquisition_service import DEFAULT_REFRESH, DashboardController, get_dashboard_controller
from ..services.fallback_data import ENDPOINT_CATALOG
from ..models.dashboard_model import (
    DashboardStateResponse,
    DashboardSummary,
    Endpoint,
    EndpointInfo,
    RefreshAccepted,
)

router = APIRouter()


@router.get(
    "/state",
    response_model=DashboardStateResponse,
    summary="Get Accumulated Dashboard State",
    description="Returns the last value obtained per endpoint, the current error and the loading flag."
)
def get_dashboard_state(controller: DashboardController = Depends(get_dashboard_controller)):
    state = controller.state
    return DashboardStateResponse(
        data=dict(state.data),
        error=state.error,
        loading=state.loading,
        lastUpdated=state.last_updated,
    )


@router.get(
    "/summary",
    response_model=DashboardSummary,
    summary="Get Dashboard Summary",
    description="Retrieves the derived statistics (totals, averages, shares, leaderboard) for the dashboard view."
)
def get_dashboard_summary(controller: DashboardController = Depends(get_dashboard_controller)):
    """
    Thin router layer: take a snapshot of the controller's state and delegate
    the arithmetic to the dashboard service.
    """
    try:
        return dashboard_service.get_summary_data(controller.state)
    except Exception as e:
        print(f"ERROR calculating dashboard summary: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while calculating the dashboard summary."
        )


@router.post(
    "/refresh",
    response_model=RefreshAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Refresh All"
)
def refresh_all(
    background_tasks: BackgroundTasks,
    controller: DashboardController = Depends(get_dashboard_controller)
):
    """Re-fetches stats, collections and users in the background."""
    background_tasks.add_task(controller.refresh_all, DEFAULT_REFRESH)
    return RefreshAccepted(endpoints=[endpoint.value for endpoint in DEFAULT_REFRESH])


@router.post(
    "/refresh/{endpoint}",
    response_model=RefreshAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Refresh a Single Endpoint"
)
def refresh_endpoint(
    endpoint: Endpoint,
    background_tasks: BackgroundTasks,
    controller: DashboardController = Depends(get_dashboard_controller)
):
    """The endpoint path parameter is validated against the fixed endpoint set (422 otherwise)."""
    background_tasks.add_task(controller.fetch_endpoint, endpoint)
    return RefreshAccepted(endpoints=[endpoint.value])


@router.get(
    "/endpoints",
    response_model=List[EndpointInfo],
    summary="List Upstream Endpoints"
)
def list_endpoints():
    return ENDPOINT_CATALOG
