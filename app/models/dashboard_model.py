# /app/models/dashboard_model.py

# --- Core Imports ---
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum


# --- Core Enumerations ---
class Endpoint(str, Enum):
    """The closed set of upstream resources the dashboard knows about."""
    STATS = "stats"
    COLLECTIONS = "collections"
    USERS = "users"
    MINTS = "mints"
    TOTALS = "totals"


class FailureKind(str, Enum):
    HTTP = "http"          # gateway answered with a non-2xx status
    TIMEOUT = "timeout"    # per-call deadline exceeded
    NETWORK = "network"    # no response at all (DNS, refused, reset...)
    PARSE = "parse"        # body was not valid JSON
    UNKNOWN = "unknown"    # anything else raised while acquiring


# --- Upstream Record Models ---
# Read-only views over the upstream JSON, used for aggregation only.
# Extra fields are kept so nothing the upstream adds is lost.

class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_address: str
    total_mints: Optional[int] = None
    first_mint_date: Optional[str] = None
    last_mint_date: Optional[str] = None


class Collection(BaseModel):
    model_config = ConfigDict(extra="allow")

    address: str
    name: str
    supply: int = 0


class ApiStats(BaseModel):
    model_config = ConfigDict(extra="allow")

    total: Optional[int] = None
    collections: List[Collection] = Field(default_factory=list)


# --- API Contract Models ---

class DashboardStateResponse(BaseModel):
    """
    Defines the data contract for GET /api/dashboard/state: the accumulated
    response state exactly as the view-controller currently holds it.
    """
    data: Dict[str, Any] = Field(
        ...,
        description="Last value obtained per endpoint key (live or fallback).",
        example={"users": [{"user_address": "82Kt7Lh6...", "total_mints": 12}]}
    )
    error: Optional[str] = Field(None, description="The most recent error message, if any.")
    loading: bool = Field(..., description="True while any acquisition is in flight.")
    lastUpdated: Optional[datetime] = Field(None, description="Time of the last successful live fetch.")


class CollectionSummary(BaseModel):
    address: str
    shortAddress: str
    name: str
    supply: int
    sharePercent: str = Field(..., description="Share of total mints, one decimal, or '0'.", example="27.6")
    barWidthPercent: float = Field(..., description="Supply relative to the largest collection, capped at 100.")


class LeaderboardEntry(BaseModel):
    rank: int
    userAddress: str
    shortAddress: str
    initials: str
    totalMints: int
    firstMintDate: Optional[str] = None
    lastMintDate: Optional[str] = None


class DistributionBucket(BaseModel):
    name: str
    value: int


class TrendPoint(BaseModel):
    month: str = Field(..., example="Jul")
    mints: int = Field(..., example=124)
    users: Optional[int] = Field(None, description="Distinct minters that month, when known.")


class DashboardSummary(BaseModel):
    """
    Defines the data contract for GET /api/dashboard/summary. Every figure
    here is derived from the accumulated state and never stored.
    """
    totalMints: int = Field(..., example=232)
    totalUsers: int = Field(..., example=8)
    avgMintsPerUser: str = Field(..., example="3.0")
    totalCollections: int = Field(..., example=4)
    status: str = Field(..., description="'Live' or 'API Error'.", example="Live")
    error: Optional[str] = None
    loading: bool = False
    lastUpdated: Optional[datetime] = None
    collections: List[CollectionSummary]
    chartCollections: List[CollectionSummary]
    leaderboard: List[LeaderboardEntry]
    distribution: List[DistributionBucket]
    trend: List[TrendPoint]
    trendSource: str = Field(..., description="'live' when built from /mints, else 'sample'.", example="sample")


class EndpointInfo(BaseModel):
    endpoint: str = Field(..., example="/users")
    description: str


class RefreshAccepted(BaseModel):
    status: str = "refreshing"
    endpoints: List[str]
