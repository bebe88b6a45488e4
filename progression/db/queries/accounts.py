"""Account and points-log queries"""
import logging
from typing import Optional

import psycopg
from psycopg.types.json import Jsonb

from progression.models.account import Account, PointsTransaction

logger = logging.getLogger(__name__)

ACCOUNT_COLUMNS = """
    user_id, total_points, weekly_points, monthly_points,
    current_streak, longest_streak, last_active_date, last_award_date,
    achievements, category_streaks, activity_counts, created_at, updated_at
"""

TRANSACTION_COLUMNS = "id, user_id, amount, kind, category, reason, event_id, created_at"


def account_from_row(row: dict) -> Account:
    return Account.model_validate(row)


def _account_params(account: Account) -> dict:
    data = account.model_dump(mode="json", include={"achievements", "category_streaks", "activity_counts"})
    return {
        "user_id": account.user_id,
        "total_points": account.total_points,
        "weekly_points": account.weekly_points,
        "monthly_points": account.monthly_points,
        "current_streak": account.current_streak,
        "longest_streak": account.longest_streak,
        "last_active_date": account.last_active_date,
        "last_award_date": account.last_award_date,
        "achievements": Jsonb(data["achievements"]),
        "category_streaks": Jsonb(data["category_streaks"]),
        "activity_counts": Jsonb(data["activity_counts"]),
        "created_at": account.created_at,
        "updated_at": account.updated_at,
    }


# ==========================================
# Accounts
# ==========================================

async def insert_account(conn: psycopg.AsyncConnection, account: Account) -> Optional[dict]:
    """
    Insert a new account row

    Returns:
        The inserted row, or None when the user already has an account
    """
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            INSERT INTO progression_accounts ({ACCOUNT_COLUMNS})
            VALUES (
                %(user_id)s, %(total_points)s, %(weekly_points)s, %(monthly_points)s,
                %(current_streak)s, %(longest_streak)s, %(last_active_date)s, %(last_award_date)s,
                %(achievements)s, %(category_streaks)s, %(activity_counts)s, %(created_at)s, %(updated_at)s
            )
            ON CONFLICT (user_id) DO NOTHING
            RETURNING {ACCOUNT_COLUMNS}
            """,
            _account_params(account)
        )
        return await cur.fetchone()


async def select_account(conn: psycopg.AsyncConnection, user_id: str, for_update: bool = False) -> Optional[dict]:
    """Fetch one account row, optionally locking it until the transaction ends"""
    lock_clause = "FOR UPDATE" if for_update else ""
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT {ACCOUNT_COLUMNS}
            FROM progression_accounts
            WHERE user_id = %s
            {lock_clause}
            """,
            (user_id,)
        )
        return await cur.fetchone()


async def update_account(conn: psycopg.AsyncConnection, account: Account) -> None:
    """Write every mutable account column"""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            UPDATE progression_accounts
            SET total_points = %(total_points)s,
                weekly_points = %(weekly_points)s,
                monthly_points = %(monthly_points)s,
                current_streak = %(current_streak)s,
                longest_streak = %(longest_streak)s,
                last_active_date = %(last_active_date)s,
                last_award_date = %(last_award_date)s,
                achievements = %(achievements)s,
                category_streaks = %(category_streaks)s,
                activity_counts = %(activity_counts)s,
                updated_at = %(updated_at)s
            WHERE user_id = %(user_id)s
            """,
            _account_params(account)
        )


async def select_all_accounts(conn: psycopg.AsyncConnection) -> list[dict]:
    """All account rows in creation order"""
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT {ACCOUNT_COLUMNS}
            FROM progression_accounts
            ORDER BY seq
            """
        )
        return await cur.fetchall()


async def select_user_ids(conn: psycopg.AsyncConnection) -> list[str]:
    async with conn.cursor() as cur:
        await cur.execute("SELECT user_id FROM progression_accounts ORDER BY seq")
        rows = await cur.fetchall()
        return [row["user_id"] for row in rows]


# ==========================================
# Points log
# ==========================================

async def insert_points_transaction(conn: psycopg.AsyncConnection, transaction: PointsTransaction) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            INSERT INTO points_transactions ({TRANSACTION_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                transaction.id,
                transaction.user_id,
                transaction.amount,
                transaction.kind.value,
                transaction.category.value if transaction.category else None,
                transaction.reason,
                transaction.event_id,
                transaction.created_at,
            )
        )


async def select_points_transaction_by_event(
    conn: psycopg.AsyncConnection,
    user_id: str,
    event_id: str
) -> Optional[dict]:
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT {TRANSACTION_COLUMNS}
            FROM points_transactions
            WHERE user_id = %s AND event_id = %s
            ORDER BY seq
            LIMIT 1
            """,
            (user_id, event_id)
        )
        return await cur.fetchone()


async def select_points_transactions(conn: psycopg.AsyncConnection, user_id: str, limit: int = 50) -> list[dict]:
    """
    Most recent points-log rows for a user

    Returns:
        [{'id', 'user_id', 'amount', 'kind', 'category', 'reason', 'event_id', 'created_at'}, ...]
        newest first
    """
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT {TRANSACTION_COLUMNS}
            FROM points_transactions
            WHERE user_id = %s
            ORDER BY seq DESC
            LIMIT %s
            """,
            (user_id, limit)
        )
        return await cur.fetchall()
