"""Unit tests for the Reward Store (progression/gamification/reward_store.py)"""
import asyncio
import re
import pytest
from datetime import timedelta

from progression.exceptions import (
    AccountNotInitializedError,
    InsufficientPointsError,
    RedemptionAlreadyUsedError,
    RedemptionLimitReachedError,
    RedemptionNotFoundError,
    RewardNotFoundError,
    ValidationError,
)
from progression.gamification.reward_store import generate_redemption_code
from progression.models.account import TransactionKind
from progression.models.reward import RewardType


# ============================================================================
# Catalog
# ============================================================================

@pytest.mark.asyncio
async def test_create_reward(service, reward_factory):
    reward = await reward_factory(limit_per_user=2, validity_days=30)

    assert reward.reward_type == RewardType.SUPPLEMENT_DISCOUNT
    assert reward.is_active is True
    assert [r.id for r in await service.list_rewards()] == [reward.id]


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides,field", [
    ({"points_cost": 0}, "points_cost"),
    ({"reward_type": "spa_day"}, "reward_type"),
    ({"limit_per_user": 0}, "limit_per_user"),
])
async def test_create_reward_validation(reward_factory, overrides, field):
    with pytest.raises(ValidationError) as exc_info:
        await reward_factory(**overrides)

    assert exc_info.value.field == field


@pytest.mark.asyncio
async def test_set_reward_active_hides_reward(service, reward_factory):
    reward = await reward_factory()

    await service.set_reward_active(reward.id, False)

    assert await service.list_rewards() == []
    assert len(await service.list_rewards(include_inactive=True)) == 1


@pytest.mark.asyncio
async def test_set_reward_active_unknown(service):
    with pytest.raises(RewardNotFoundError):
        await service.set_reward_active("missing", True)


@pytest.mark.asyncio
async def test_seed_standard_rewards_only_once(service):
    seeded = await service.seed_standard_rewards()

    assert len(seeded) == 5
    assert {r.points_cost for r in seeded} == {500, 1500, 800, 1000, 300}
    assert await service.seed_standard_rewards() == []
    assert len(await service.list_rewards()) == 5


# ============================================================================
# ListAvailable
# ============================================================================

@pytest.mark.asyncio
async def test_list_available_filters_affordable_and_active(service, make_account, reward_factory):
    await make_account("shopper", total_points=900)
    cheap = await reward_factory(name="Meetup Entry", points_cost=300, reward_type="event_entry")
    await reward_factory(name="Trainer Session", points_cost=1500, reward_type="trainer_session")
    retired = await reward_factory(name="Old Voucher", points_cost=100, reward_type="meal_voucher")
    await service.set_reward_active(retired.id, False)

    available = await service.list_available_rewards("shopper")

    assert [r.id for r in available] == [cheap.id]
    assert available[0].already_redeemed is False


@pytest.mark.asyncio
async def test_list_available_excludes_exhausted_and_flags_outstanding(service, make_account, reward_factory):
    await make_account("shopper", total_points=2000)
    once = await reward_factory(name="Shake", points_cost=500, limit_per_user=1)
    repeatable = await reward_factory(name="Meetup", points_cost=300, reward_type="event_entry")

    await service.redeem("shopper", once.id)
    await service.redeem("shopper", repeatable.id)

    available = await service.list_available_rewards("shopper")

    assert [r.id for r in available] == [repeatable.id]
    assert available[0].already_redeemed is True


@pytest.mark.asyncio
async def test_list_available_ignores_expired_redemptions(service, clock, make_account, reward_factory):
    await make_account("shopper", total_points=1000)
    reward = await reward_factory(points_cost=300, validity_days=30)
    await service.redeem("shopper", reward.id)

    clock.advance(days=31)
    available = await service.list_available_rewards("shopper")

    assert available[0].already_redeemed is False


@pytest.mark.asyncio
async def test_list_available_without_account(service, reward_factory):
    await reward_factory()

    assert await service.list_available_rewards("ghost") == []


# ============================================================================
# Redeem
# ============================================================================

@pytest.mark.asyncio
async def test_redeem_exact_balance_then_limit(service, make_account, reward_factory):
    """Cost 500, balance 500, limit 1: first succeeds with 0 left, second hits the limit"""
    await make_account("buyer", total_points=500)
    reward = await reward_factory(points_cost=500, limit_per_user=1)

    result = await service.redeem("buyer", reward.id)

    assert result.remaining_points == 0
    assert result.redemption_id
    with pytest.raises(RedemptionLimitReachedError):
        await service.redeem("buyer", reward.id)


@pytest.mark.asyncio
async def test_redeem_balance_law(service, make_account, reward_factory):
    await make_account("buyer", total_points=1234, weekly_points=400, monthly_points=900)
    reward = await reward_factory(points_cost=800, reward_type="meal_voucher")

    result = await service.redeem("buyer", reward.id)

    account = await service.store.get_account("buyer")
    assert account.total_points == 1234 - 800 == result.remaining_points
    assert account.weekly_points == 400
    assert account.monthly_points == 900

    history = await service.get_points_history("buyer")
    assert history[0].kind == TransactionKind.REDEMPTION
    assert history[0].amount == -800


@pytest.mark.asyncio
async def test_redeem_insufficient_points_changes_nothing(service, make_account, reward_factory):
    await make_account("buyer", total_points=499)
    reward = await reward_factory(points_cost=500)

    with pytest.raises(InsufficientPointsError) as exc_info:
        await service.redeem("buyer", reward.id)

    assert exc_info.value.required == 500
    assert exc_info.value.available == 499
    account = await service.store.get_account("buyer")
    assert account.total_points == 499
    assert await service.list_redemptions("buyer") == []


@pytest.mark.asyncio
async def test_redeem_unknown_or_inactive_reward(service, make_account, reward_factory):
    await make_account("buyer", total_points=5000)
    reward = await reward_factory()
    await service.set_reward_active(reward.id, False)

    with pytest.raises(RewardNotFoundError):
        await service.redeem("buyer", "does-not-exist")
    with pytest.raises(RewardNotFoundError):
        await service.redeem("buyer", reward.id)


@pytest.mark.asyncio
async def test_redeem_requires_account(service, reward_factory):
    reward = await reward_factory()

    with pytest.raises(AccountNotInitializedError):
        await service.redeem("ghost", reward.id)


@pytest.mark.asyncio
async def test_redeem_sets_expiry_from_validity(service, clock, make_account, reward_factory):
    await make_account("buyer", total_points=1000)
    expiring = await reward_factory(points_cost=100, validity_days=30)
    open_ended = await reward_factory(name="Merch", points_cost=100, reward_type="gym_merchandise")

    first = await service.redeem("buyer", expiring.id)
    second = await service.redeem("buyer", open_ended.id)

    assert first.expires_at == clock() + timedelta(days=30)
    assert second.expires_at is None


@pytest.mark.asyncio
async def test_concurrent_redemptions_never_overdraw(service, make_account, reward_factory):
    await make_account("buyer", total_points=600)
    reward = await reward_factory(points_cost=500)

    results = await asyncio.gather(
        service.redeem("buyer", reward.id),
        service.redeem("buyer", reward.id),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientPointsError)
    account = await service.store.get_account("buyer")
    assert account.total_points == 100
    assert len(await service.list_redemptions("buyer")) == 1


def test_redemption_code_format(clock):
    code = generate_redemption_code(clock())

    assert re.fullmatch(r"REWARD-[0-9A-Z]+-[0-9A-F]{6}", code)


# ============================================================================
# Redemption lifecycle
# ============================================================================

@pytest.mark.asyncio
async def test_mark_redemption_used_once(service, make_account, reward_factory):
    await make_account("buyer", total_points=500)
    reward = await reward_factory(points_cost=300)
    result = await service.redeem("buyer", reward.id)

    redemption = await service.mark_redemption_used(result.redemption_id)

    assert redemption.used is True
    with pytest.raises(RedemptionAlreadyUsedError):
        await service.mark_redemption_used(result.redemption_id)


@pytest.mark.asyncio
async def test_mark_unknown_redemption(service):
    with pytest.raises(RedemptionNotFoundError):
        await service.mark_redemption_used("nope")


@pytest.mark.asyncio
async def test_list_redemptions_newest_first(service, clock, make_account, reward_factory):
    await make_account("buyer", total_points=1000)
    shake = await reward_factory(name="Shake", points_cost=100)
    meetup = await reward_factory(name="Meetup", points_cost=100, reward_type="event_entry")

    await service.redeem("buyer", shake.id)
    clock.advance(minutes=5)
    await service.redeem("buyer", meetup.id)

    redemptions = await service.list_redemptions("buyer")
    assert [r.reward_id for r in redemptions] == [meetup.id, shake.id]
