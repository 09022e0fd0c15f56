"""Client-side list helpers: search, pagination and summary stats.

All functions work on lists of row dicts as returned by the API and never
touch the server.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional


def filter_rows(rows: Iterable[dict], field: str, term: Optional[str]) -> list[dict]:
    """Keep rows whose `field` contains `term`, ignoring case.

    A blank term keeps everything. Otherwise the term is matched as typed,
    surrounding spaces included; rows with a missing/null field never match.
    """
    rows = list(rows)
    if not (term or "").strip():
        return rows
    needle = term.lower()
    return [r for r in rows if needle in str(r.get(field) or "").lower()]


def paginate(rows: list, page: int = 1, per_page: int = 10) -> dict:
    """Slice `rows` into 1-based pages.

    Out-of-range pages return an empty `items` list rather than raising.
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if per_page < 1:
        raise ValueError("per_page must be >= 1")
    total = len(rows)
    pages = (total + per_page - 1) // per_page
    start = (page - 1) * per_page
    return {
        "items": rows[start:start + per_page],
        "page": page,
        "per_page": per_page,
        "total": total,
        "pages": pages,
    }


def _parse_ts(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    # the API serializes naive UTC timestamps from SQLite
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def count_recent(rows: Iterable[dict], days: int = 7, now: Optional[datetime] = None) -> int:
    """Count rows whose `created_at` falls within the last `days` days."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)
    count = 0
    for r in rows:
        ts = _parse_ts(r.get("created_at"))
        if ts is not None and ts >= cutoff:
            count += 1
    return count


def category_stats(rows: list[dict]) -> dict:
    return {
        "total": len(rows),
        "with_image": sum(1 for r in rows if r.get("image")),
    }


def avatar_stats(rows: list[dict], now: Optional[datetime] = None) -> dict:
    return {
        "total": len(rows),
        "recently_added": count_recent(rows, now=now),
    }


def qa_stats(rows: list[dict]) -> dict:
    by_difficulty = Counter(r.get("difficulty") for r in rows)
    return {
        "total": len(rows),
        "active": sum(1 for r in rows if r.get("is_active")),
        "by_difficulty": {level: by_difficulty.get(level, 0) for level in ("EASY", "MEDIUM", "HARD")},
    }
