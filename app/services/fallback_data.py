# /app/services/fallback_data.py

"""
Static sample data shown when a live call fails, plus the catalog of the
upstream endpoints. Only `users`, `stats` and `collections` have a fallback;
`mints` and `totals` have none.
"""

import copy
from typing import Any, Dict, List, Optional

from ..models.dashboard_model import Endpoint

FALLBACK_USERS: List[Dict[str, Any]] = [
    {
        "user_address": "82Kt7Lh67mYhazF2btx8P36xJXB7dE4t5yNFay2fDjZV",
        "total_mints": 12,
        "first_mint_date": "2025-07-09",
        "last_mint_date": "2025-08-17",
    },
    {
        "user_address": "52qRER5VyGpF77QHf528zf78xyCkf1yC19ouTLUfH7VA",
        "total_mints": 12,
        "first_mint_date": "2025-05-23",
        "last_mint_date": "2025-08-09",
    },
    {
        "user_address": "68BW8o87upBXnVYbif5nBfa1omXuL7iuTnRfpFqV99be",
        "total_mints": 12,
        "first_mint_date": "2025-08-05",
        "last_mint_date": "2025-08-11",
    },
    {
        "user_address": "CMMUMzTZJb9NMdwwNjNrMVvVPRDqcHicNaEajgxGoqxn",
        "total_mints": 12,
        "first_mint_date": "2025-05-22",
        "last_mint_date": "2025-08-09",
    },
    {
        "user_address": "ADjoTuHWvJbGq3E2GQmK3ZYsB8KqoNmfFWFarxVRKnzf",
        "total_mints": 11,
        "first_mint_date": "2025-05-27",
        "last_mint_date": "2025-08-12",
    },
    {
        "user_address": "8guPL7pGBHx2aFEQfSTsnPjtM7svf8ikeiTQCmUo4ezD",
        "total_mints": 9,
        "first_mint_date": "2025-07-17",
        "last_mint_date": "2025-07-29",
    },
    {
        "user_address": "FEZhZZCPu7xTBwupZhCFHzjmhaJ8mVVtdrrLc7n1DquJ",
        "total_mints": 7,
        "first_mint_date": "2025-06-20",
        "last_mint_date": "2025-07-29",
    },
    {
        "user_address": "23d1irPf9ncmnFDEGZjdvGxK3eaLynqawCsTbZAusbQh",
        "total_mints": 7,
        "first_mint_date": "2025-07-06",
        "last_mint_date": "2025-08-10",
    },
]

FALLBACK_COLLECTIONS: List[Dict[str, Any]] = [
    {"address": "53tiK9zY67DuyA1tgQ6rfNgixMB1LiCP9D67RgfbCrpz", "name": "Anchor Vault", "supply": 144},
    {"address": "AL38QM96SDu4Jpx7UGcTcaLtwvWPVgRUzg9PqC787djK", "name": "Pinocchio Vault", "supply": 88},
    {"address": "2E5K7FxDWGXkbRpFEAkhR8yQwiUBGggVyng2vaAhah5L", "name": "Anchor Escrow", "supply": 64},
    {"address": "HTXVJ8DD6eSxkVyDwgddxGw8cC8j6kXda3BUipA43Wvs", "name": "Pinocchio Escrow", "supply": 38},
]

FALLBACK_STATS: Dict[str, Any] = {
    "total": sum(user["total_mints"] for user in FALLBACK_USERS),
    "collections": FALLBACK_COLLECTIONS,
}

_FALLBACKS: Dict[str, Any] = {
    Endpoint.USERS.value: FALLBACK_USERS,
    Endpoint.STATS.value: FALLBACK_STATS,
    Endpoint.COLLECTIONS.value: FALLBACK_COLLECTIONS,
}

# Monthly sample series for the mint trend chart, used until `mints` holds live data.
FALLBACK_MINT_TREND: List[Dict[str, Any]] = [
    {"month": "May", "mints": 45, "users": 12},
    {"month": "Jun", "mints": 78, "users": 23},
    {"month": "Jul", "mints": 124, "users": 34},
    {"month": "Aug", "mints": 156, "users": 41},
]

ENDPOINT_CATALOG: List[Dict[str, str]] = [
    {"endpoint": "/collections", "description": "List all collections with mint counts"},
    {"endpoint": "/users", "description": "List all users with mint statistics"},
    {"endpoint": "/mints", "description": "Get timeseries mint data"},
    {"endpoint": "/totals", "description": "Get cumulative total data"},
    {"endpoint": "/stats", "description": "Database statistics"},
]


def get_fallback(key: str) -> Optional[Any]:
    """Returns a private copy of the fallback for `key`, or None if it has none."""
    if key not in _FALLBACKS:
        return None
    return copy.deepcopy(_FALLBACKS[key])
