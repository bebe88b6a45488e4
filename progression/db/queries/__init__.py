"""
Database queries for the PostgreSQL backend.

Every function takes an open connection so callers can group several
statements in one transaction.

Module organization:
- accounts.py: Accounts and the points log
- rewards.py: Reward catalog and redemptions
"""

from progression.db.queries.accounts import (
    account_from_row,
    insert_account,
    select_account,
    update_account,
    select_all_accounts,
    select_user_ids,
    insert_points_transaction,
    select_points_transaction_by_event,
    select_points_transactions,
)

from progression.db.queries.rewards import (
    upsert_reward,
    select_reward,
    select_rewards,
    insert_redemption,
    count_user_redemptions,
    select_user_redemptions,
    select_redemption_for_update,
    set_redemption_used,
)

__all__ = [
    # Accounts
    "account_from_row",
    "insert_account",
    "select_account",
    "update_account",
    "select_all_accounts",
    "select_user_ids",
    "insert_points_transaction",
    "select_points_transaction_by_event",
    "select_points_transactions",
    # Rewards
    "upsert_reward",
    "select_reward",
    "select_rewards",
    "insert_redemption",
    "count_user_redemptions",
    "select_user_redemptions",
    "select_redemption_for_update",
    "set_redemption_used",
]
