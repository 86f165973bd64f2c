# -*- coding: utf-8 -*-
"""App database — SQLite helpers.

Every table is a flat record keyed by a user id; JSON-shaped fields are stored as TEXT.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        current_weight REAL NOT NULL,
        target_weight REAL NOT NULL,
        height REAL NOT NULL,
        age INTEGER NOT NULL,
        birth_date TEXT,
        gender TEXT NOT NULL,
        activity_level TEXT NOT NULL,
        goal TEXT NOT NULL,
        daily_calorie_target INTEGER NOT NULL,
        protein_target INTEGER NOT NULL,
        carbs_target INTEGER,
        fat_target INTEGER,
        preferred_units TEXT NOT NULL,
        timezone TEXT NOT NULL,
        onboarding_completed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_preferences (
        user_id TEXT PRIMARY KEY,
        display_mode TEXT NOT NULL,
        show_calories INTEGER NOT NULL,
        show_protein INTEGER NOT NULL,
        show_carbs INTEGER NOT NULL,
        show_fats INTEGER NOT NULL,
        language TEXT NOT NULL,
        dark_mode INTEGER NOT NULL DEFAULT 0,
        reminder_settings_json TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS dietary_preferences (
        user_id TEXT PRIMARY KEY,
        restrictions_json TEXT NOT NULL,
        custom_notes TEXT,
        intermittent_fasting_json TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS onboarding_progress (
        user_id TEXT PRIMARY KEY,
        current_step TEXT NOT NULL,
        responses_json TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        started_at TEXT NOT NULL,
        completed_at TEXT,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS food_logs (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        time TEXT NOT NULL,
        meal TEXT NOT NULL,
        description TEXT NOT NULL,
        foods_json TEXT NOT NULL,
        total_calories REAL NOT NULL,
        total_protein REAL NOT NULL,
        total_carbs REAL NOT NULL,
        total_fat REAL NOT NULL,
        photo_url TEXT,
        ai_estimated INTEGER NOT NULL,
        confidence TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_food_logs_user_date ON food_logs(user_id, date, time);",
    """
    CREATE TABLE IF NOT EXISTS weight_logs (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        weight REAL NOT NULL,
        unit TEXT NOT NULL,
        date TEXT NOT NULL,
        time TEXT NOT NULL,
        notes TEXT,
        created_at TEXT NOT NULL,
        UNIQUE(user_id, date),
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_weight_logs_user_created ON weight_logs(user_id, created_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS chat_threads (
        thread_id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        message_count INTEGER NOT NULL DEFAULT 0,
        first_message_at TEXT NOT NULL,
        last_message_at TEXT NOT NULL,
        UNIQUE(user_id, date),
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS chat_history (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        timestamp REAL NOT NULL,
        metadata_json TEXT,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_chat_history_user_ts ON chat_history(user_id, timestamp);",
    """
    CREATE TABLE IF NOT EXISTS subscriptions (
        id TEXT PRIMARY KEY,
        user_id TEXT,
        polar_id TEXT UNIQUE,
        polar_price_id TEXT,
        currency TEXT,
        interval TEXT,
        status TEXT,
        amount INTEGER,
        current_period_start TEXT,
        current_period_end TEXT,
        cancel_at_period_end INTEGER,
        customer_id TEXT,
        updated_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_subscriptions_user ON subscriptions(user_id, status);",
    """
    CREATE TABLE IF NOT EXISTS pending_confirmations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        thread_id TEXT NOT NULL,
        tool_call_id TEXT NOT NULL,
        confirmation_json TEXT NOT NULL,
        status TEXT NOT NULL,
        created_at REAL NOT NULL,
        expires_at REAL NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_pending_user_thread ON pending_confirmations(user_id, thread_id, status);",
    "CREATE INDEX IF NOT EXISTS idx_pending_expires ON pending_confirmations(expires_at);",
    """
    CREATE TABLE IF NOT EXISTS confirmed_bubbles (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        thread_id TEXT NOT NULL,
        message_index INTEGER NOT NULL,
        confirmation_id TEXT NOT NULL UNIQUE,
        tool_call_id TEXT,
        food_description TEXT NOT NULL,
        status TEXT NOT NULL,
        confirmed_at REAL NOT NULL,
        expires_at REAL NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_bubbles_user_thread ON confirmed_bubbles(user_id, thread_id);",
    """
    CREATE TABLE IF NOT EXISTS session_cache (
        user_id TEXT NOT NULL,
        cache_key TEXT NOT NULL,
        data_json TEXT NOT NULL,
        expires_at REAL NOT NULL,
        PRIMARY KEY (user_id, cache_key)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_session_cache_expires ON session_cache(expires_at);",
    """
    CREATE TABLE IF NOT EXISTS usage_tracking (
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        chat_count INTEGER NOT NULL DEFAULT 0,
        photo_analysis_count INTEGER NOT NULL DEFAULT 0,
        opus_calls_count INTEGER NOT NULL DEFAULT 0,
        sonnet_calls_count INTEGER NOT NULL DEFAULT 0,
        last_reset_at TEXT NOT NULL,
        PRIMARY KEY (user_id, date)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS weekly_summaries (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        week_start_date TEXT NOT NULL,
        week_end_date TEXT NOT NULL,
        stats_json TEXT NOT NULL,
        insights TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE(user_id, week_start_date),
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS goal_history (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        goal TEXT NOT NULL,
        starting_weight REAL NOT NULL,
        target_weight REAL NOT NULL,
        starting_unit TEXT NOT NULL,
        status TEXT NOT NULL,
        reason TEXT,
        triggered_by TEXT NOT NULL,
        started_at TEXT NOT NULL,
        completed_at TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_goal_history_user_status ON goal_history(user_id, status);",
    """
    CREATE TABLE IF NOT EXISTS goal_achievements (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        goal_type TEXT NOT NULL,
        target_weight REAL NOT NULL,
        achieved_weight REAL NOT NULL,
        weekly_average REAL NOT NULL,
        achieved_at TEXT NOT NULL,
        bob_suggested INTEGER NOT NULL DEFAULT 0,
        new_goal_set INTEGER,
        days_at_goal INTEGER,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_goal_achievements_user ON goal_achievements(user_id, achieved_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS calibration_history (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        old_calorie_target INTEGER NOT NULL,
        new_calorie_target INTEGER NOT NULL,
        reason TEXT NOT NULL,
        data_points_analyzed INTEGER NOT NULL,
        confidence TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    );
    """,
]


def init_app_db(db_path: Path) -> None:
    conn = connect(db_path)
    try:
        cur = conn.cursor()
        for statement in _SCHEMA:
            cur.execute(statement)
        conn.commit()
    finally:
        conn.close()


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
