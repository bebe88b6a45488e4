"""Reward catalog and redemption queries"""
import logging
from typing import Optional

import psycopg

from progression.models.reward import Redemption, Reward

logger = logging.getLogger(__name__)

REWARD_COLUMNS = """
    id, name, description, points_cost, reward_type, availability,
    image_url, is_active, limit_per_user, validity_days, created_at
"""

REDEMPTION_COLUMNS = "id, user_id, reward_id, redemption_code, redeemed_at, expires_at, used"


# ==========================================
# Catalog
# ==========================================

async def upsert_reward(conn: psycopg.AsyncConnection, reward: Reward) -> None:
    """Insert a catalog entry or overwrite the existing one with the same id"""
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            INSERT INTO rewards ({REWARD_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE
            SET name = EXCLUDED.name,
                description = EXCLUDED.description,
                points_cost = EXCLUDED.points_cost,
                reward_type = EXCLUDED.reward_type,
                availability = EXCLUDED.availability,
                image_url = EXCLUDED.image_url,
                is_active = EXCLUDED.is_active,
                limit_per_user = EXCLUDED.limit_per_user,
                validity_days = EXCLUDED.validity_days
            """,
            (
                reward.id,
                reward.name,
                reward.description,
                reward.points_cost,
                reward.reward_type.value,
                reward.availability,
                reward.image_url,
                reward.is_active,
                reward.limit_per_user,
                reward.validity_days,
                reward.created_at,
            )
        )


async def select_reward(conn: psycopg.AsyncConnection, reward_id: str) -> Optional[dict]:
    async with conn.cursor() as cur:
        await cur.execute(
            f"SELECT {REWARD_COLUMNS} FROM rewards WHERE id = %s",
            (reward_id,)
        )
        return await cur.fetchone()


async def select_rewards(conn: psycopg.AsyncConnection) -> list[dict]:
    async with conn.cursor() as cur:
        await cur.execute(f"SELECT {REWARD_COLUMNS} FROM rewards ORDER BY seq")
        return await cur.fetchall()


# ==========================================
# Redemptions
# ==========================================

async def insert_redemption(conn: psycopg.AsyncConnection, redemption: Redemption) -> None:
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            INSERT INTO redemptions ({REDEMPTION_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                redemption.id,
                redemption.user_id,
                redemption.reward_id,
                redemption.redemption_code,
                redemption.redeemed_at,
                redemption.expires_at,
                redemption.used,
            )
        )


async def count_user_redemptions(conn: psycopg.AsyncConnection, user_id: str, reward_id: str) -> int:
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT COUNT(*) AS redemption_count
            FROM redemptions
            WHERE user_id = %s AND reward_id = %s
            """,
            (user_id, reward_id)
        )
        row = await cur.fetchone()
        return row["redemption_count"] if row else 0


async def select_user_redemptions(conn: psycopg.AsyncConnection, user_id: str) -> list[dict]:
    """User's redemptions, newest first"""
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            SELECT {REDEMPTION_COLUMNS}
            FROM redemptions
            WHERE user_id = %s
            ORDER BY seq DESC
            """,
            (user_id,)
        )
        return await cur.fetchall()


async def select_redemption_for_update(conn: psycopg.AsyncConnection, redemption_id: str) -> Optional[dict]:
    async with conn.cursor() as cur:
        await cur.execute(
            f"SELECT {REDEMPTION_COLUMNS} FROM redemptions WHERE id = %s FOR UPDATE",
            (redemption_id,)
        )
        return await cur.fetchone()


async def set_redemption_used(conn: psycopg.AsyncConnection, redemption_id: str) -> Optional[dict]:
    async with conn.cursor() as cur:
        await cur.execute(
            f"""
            UPDATE redemptions
            SET used = TRUE
            WHERE id = %s
            RETURNING {REDEMPTION_COLUMNS}
            """,
            (redemption_id,)
        )
        return await cur.fetchone()
