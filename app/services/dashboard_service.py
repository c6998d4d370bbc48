# /app/services/dashboard_service.py

# --- Core Imports ---
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

# Import the Pydantic models to ensure our output matches the data contract.
from ..models.dashboard_model import (
    ApiStats,
    Collection,
    CollectionSummary,
    DashboardSummary,
    DistributionBucket,
    LeaderboardEntry,
    TrendPoint,
    User,
)
from .dashboard_state import DashboardState
from .fallback_data import FALLBACK_MINT_TREND, FALLBACK_USERS

CHART_COLLECTION_LIMIT = 6
LEADERBOARD_LIMIT = 8

# Mint-count buckets for the user distribution chart. Bins are right-inclusive.
DISTRIBUTION_BINS = [0, 2, 5, 10, float("inf")]
DISTRIBUTION_LABELS = ["1-2 Mints", "3-5 Mints", "6-10 Mints", "10+ Mints"]

# Field names accepted in `/mints` time series rows, first match wins.
TREND_DATE_FIELDS = ("date", "day", "timestamp", "mint_date")
TREND_COUNT_FIELDS = ("mints", "count", "total")
TREND_USER_FIELDS = ("user_address", "user", "minter")


# --- PURE UTILITY FUNCTIONS ---

def format_one_decimal(numerator: float, denominator: float, scale: int = 1) -> str:
    """numerator * scale / denominator, rounded half-up to one decimal place."""
    value = Decimal(str(numerator)) * Decimal(scale) / Decimal(str(denominator))
    return str(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def average_mints_per_user(total_mints: int, total_users: int) -> str:
    # "0" rather than a division by zero when either side is empty.
    if not total_mints or not total_users:
        return "0"
    return format_one_decimal(total_mints, total_users)


def collection_share(supply: int, total_mints: int) -> str:
    """Percentage of all mints that belong to one collection."""
    if not total_mints:
        return "0"
    return format_one_decimal(supply, total_mints, scale=100)


def shorten_address(address: str) -> str:
    return f"{address[:8]}...{address[-4:]}"


def _parse_list(raw: Any, model) -> List:
    if not isinstance(raw, list):
        return []
    parsed = []
    for item in raw:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            print(f"WARNING: Skipping malformed {model.__name__} record: {e.error_count()} error(s)")
    return parsed


def _parse_stats(raw: Any) -> Optional[ApiStats]:
    if not isinstance(raw, dict):
        return None
    try:
        return ApiStats.model_validate(raw)
    except ValidationError as e:
        print(f"WARNING: Ignoring malformed stats payload: {e.error_count()} error(s)")
        return None


# --- DERIVED VIEWS OVER THE ACCUMULATED STATE ---

def current_users(data: Dict[str, Any]) -> List[User]:
    """Live or fallback users if any were stored, otherwise the bundled sample users."""
    if "users" in data and data["users"] is not None:
        return _parse_list(data["users"], User)
    return _parse_list(FALLBACK_USERS, User)


def current_collections(data: Dict[str, Any]) -> List[Collection]:
    if data.get("collections") is not None:
        return _parse_list(data["collections"], Collection)
    stats = _parse_stats(data.get("stats"))
    return list(stats.collections) if stats else []


def total_mints(data: Dict[str, Any], users: Optional[List[User]] = None) -> int:
    """The upstream-reported total if present, else the sum of per-user mint counts."""
    stats = _parse_stats(data.get("stats"))
    if stats and stats.total:
        return stats.total
    users = users if users is not None else current_users(data)
    return sum(user.total_mints or 0 for user in users)


def mint_distribution(users: List[User]) -> List[DistributionBucket]:
    """Counts users per mint-count bucket. Users with no mints fall in no bucket."""
    counts = pd.Series([user.total_mints or 0 for user in users], dtype="float64")
    bucketed = pd.cut(counts, bins=DISTRIBUTION_BINS, labels=DISTRIBUTION_LABELS, right=True)
    tally = bucketed.value_counts().reindex(DISTRIBUTION_LABELS, fill_value=0)
    return [DistributionBucket(name=label, value=int(tally[label])) for label in DISTRIBUTION_LABELS]


def _first_column(frame: pd.DataFrame, candidates: Tuple[str, ...]) -> Optional[str]:
    return next((name for name in candidates if name in frame.columns), None)


def _sample_trend() -> List[TrendPoint]:
    return [TrendPoint(**point) for point in FALLBACK_MINT_TREND]


def mint_trend(data: Dict[str, Any]) -> Tuple[List[TrendPoint], str]:
    """
    Monthly mint totals built from the stored `mints` time series.

    Each row needs a parseable date. A row without a count field counts as
    one mint. Rows that are not objects or whose date cannot be parsed are
    dropped. Returns the points and their source, 'live' or 'sample'; the
    sample series is used whenever no usable row remains.
    """
    raw = data.get("mints")
    records = [row for row in raw if isinstance(row, dict)] if isinstance(raw, list) else []
    if not records:
        return _sample_trend(), "sample"

    frame = pd.DataFrame(records)
    date_col = _first_column(frame, TREND_DATE_FIELDS)
    if date_col is None:
        print("WARNING: Mint series has no date field; showing the sample trend")
        return _sample_trend(), "sample"

    count_col = _first_column(frame, TREND_COUNT_FIELDS)
    user_col = _first_column(frame, TREND_USER_FIELDS)

    dates = pd.to_datetime(frame[date_col], errors="coerce", utc=True, format="mixed")
    series = pd.DataFrame({
        "period": dates.dt.tz_localize(None).dt.to_period("M"),
        "mints": pd.to_numeric(frame[count_col], errors="coerce").fillna(0) if count_col else 1,
        "user": frame[user_col] if user_col else None,
    }).dropna(subset=["period"])
    if series.empty:
        return _sample_trend(), "sample"

    grouped = series.groupby("period", sort=True)
    monthly = grouped["mints"].sum()
    minters = grouped["user"].nunique() if user_col else None
    points = [
        TrendPoint(
            month=period.strftime("%b %Y"),
            mints=int(total),
            users=int(minters[period]) if minters is not None else None,
        )
        for period, total in monthly.items()
    ]
    return points, "live"


def _summarize_collections(collections: List[Collection], total: int) -> List[CollectionSummary]:
    max_supply = max((c.supply for c in collections), default=0)
    summaries = []
    for collection in collections:
        width = min(collection.supply / max_supply * 100, 100.0) if max_supply > 0 else 0.0
        summaries.append(CollectionSummary(
            address=collection.address,
            shortAddress=shorten_address(collection.address),
            name=collection.name,
            supply=collection.supply,
            sharePercent=collection_share(collection.supply, total),
            barWidthPercent=round(width, 2),
        ))
    return summaries


def _build_leaderboard(users: List[User]) -> List[LeaderboardEntry]:
    return [
        LeaderboardEntry(
            rank=index + 1,
            userAddress=user.user_address,
            shortAddress=shorten_address(user.user_address),
            initials=user.user_address[:2].upper(),
            totalMints=user.total_mints or 0,
            firstMintDate=user.first_mint_date,
            lastMintDate=user.last_mint_date,
        )
        for index, user in enumerate(users[:LEADERBOARD_LIMIT])
    ]


# --- Core Public Function ---

def get_summary_data(state: DashboardState) -> DashboardSummary:
    """
    Derives every dashboard figure from a state snapshot. Nothing computed
    here is written back to the state.
    """
    data = state.data

    # 1. Resolve the record lists, falling back where the view did.
    users = current_users(data)
    collections = current_collections(data)

    # 2. Totals and per-collection figures.
    total = total_mints(data, users)
    collection_summaries = _summarize_collections(collections, total)

    # 3. Chart series.
    trend, trend_source = mint_trend(data)

    # 4. Assemble the final response object.
    return DashboardSummary(
        totalMints=total,
        totalUsers=len(users),
        avgMintsPerUser=average_mints_per_user(total, len(users)),
        totalCollections=len(collections),
        status="API Error" if state.error else "Live",
        error=state.error,
        loading=state.loading,
        lastUpdated=state.last_updated,
        collections=collection_summaries,
        chartCollections=collection_summaries[:CHART_COLLECTION_LIMIT],
        leaderboard=_build_leaderboard(users),
        distribution=mint_distribution(users),
        trend=trend,
        trendSource=trend_source,
    )
