# -*- coding: utf-8 -*-
"""Subscriptions — read-only billing state (rows are written by operators, not webhooks)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _subscription_row(row: Any) -> Dict[str, Any]:
    data = dict(row)
    data["cancel_at_period_end"] = bool(data.get("cancel_at_period_end"))
    return data


def has_active_subscription(user_id: str) -> bool:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT 1 FROM subscriptions WHERE user_id = ? AND status = 'active' LIMIT 1",
            (user_id,),
        ).fetchone()
        return row is not None


def get_current_subscription(user_id: str) -> Optional[Dict[str, Any]]:
    """Most recently updated subscription for the user, active or not."""
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM subscriptions WHERE user_id = ? ORDER BY updated_at DESC LIMIT 1",
            (user_id,),
        ).fetchone()
        return _subscription_row(row) if row else None


def upsert_subscription(
    *,
    user_id: str,
    polar_id: str,
    status: str,
    polar_price_id: Optional[str] = None,
    currency: Optional[str] = None,
    interval: Optional[str] = None,
    amount: Optional[int] = None,
    current_period_start: Optional[str] = None,
    current_period_end: Optional[str] = None,
    cancel_at_period_end: bool = False,
    customer_id: Optional[str] = None,
) -> Dict[str, Any]:
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO subscriptions (
                id, user_id, polar_id, polar_price_id, currency, interval, status, amount,
                current_period_start, current_period_end, cancel_at_period_end, customer_id, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(polar_id) DO UPDATE SET
                user_id = excluded.user_id,
                polar_price_id = excluded.polar_price_id,
                currency = excluded.currency,
                interval = excluded.interval,
                status = excluded.status,
                amount = excluded.amount,
                current_period_start = excluded.current_period_start,
                current_period_end = excluded.current_period_end,
                cancel_at_period_end = excluded.cancel_at_period_end,
                customer_id = excluded.customer_id,
                updated_at = excluded.updated_at
            """,
            (
                str(uuid4()),
                user_id,
                polar_id,
                polar_price_id,
                currency,
                interval,
                status,
                amount,
                current_period_start,
                current_period_end,
                1 if cancel_at_period_end else 0,
                customer_id,
                _utc_now(),
            ),
        )
        row = conn.execute("SELECT * FROM subscriptions WHERE polar_id = ?", (polar_id,)).fetchone()
        return _subscription_row(row)
