"""API routes for the progression engine"""
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from progression.api.auth import verify_api_key
from progression.api.middleware import (
    ADMIN_RATE_LIMIT,
    REDEEM_RATE_LIMIT,
    WRITE_RATE_LIMIT,
    limiter,
)
from progression.api.models import (
    AdvanceStreakRequest,
    AwardPointsRequest,
    CreateRewardRequest,
    PeriodResetResponse,
    RedeemRequest,
    UpdateRewardRequest,
)
from progression.gamification.leaderboard import DEFAULT_LIMIT
from progression.models.account import (
    Account,
    AwardResult,
    LeaderboardEntry,
    PointsTransaction,
    StreakResult,
)
from progression.models.achievement import AchievementStatus
from progression.models.reward import AvailableReward, Redemption, RedemptionResult, Reward
from progression.models.status import AccountStatus
from progression.services.progression_service import ProgressionService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_api_key)])


def get_service(request: Request) -> ProgressionService:
    """ProgressionService attached to the running application"""
    return request.app.state.service


# ==========================================
# Accounts
# ==========================================

@router.post("/api/v1/accounts/{user_id}", response_model=Account, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_RATE_LIMIT)
async def initialize_account(
    request: Request,
    response: Response,
    user_id: str,
    service: ProgressionService = Depends(get_service)
):
    """Create the user's account; 200 with the existing account when it is already there"""
    if await service.get_account(user_id) is not None:
        response.status_code = status.HTTP_200_OK
    return await service.initialize(user_id)


@router.get("/api/v1/accounts/{user_id}", response_model=AccountStatus)
async def get_account_status(
    user_id: str,
    service: ProgressionService = Depends(get_service)
):
    """Account totals, level progress, leaderboard position and recent redemptions"""
    account_status = await service.get_status(user_id)
    if account_status is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No progression account for user {user_id}"
        )
    return account_status


@router.post("/api/v1/accounts/{user_id}/points", response_model=AwardResult)
@limiter.limit(WRITE_RATE_LIMIT)
async def award_points(
    request: Request,
    user_id: str,
    payload: AwardPointsRequest,
    service: ProgressionService = Depends(get_service)
):
    """Credit points for a qualifying activity"""
    return await service.award_points(
        user_id,
        payload.amount,
        payload.reason,
        payload.category,
        event_id=payload.event_id,
    )


@router.post("/api/v1/accounts/{user_id}/streak", response_model=StreakResult)
@limiter.limit(WRITE_RATE_LIMIT)
async def advance_streak(
    request: Request,
    user_id: str,
    payload: AdvanceStreakRequest,
    service: ProgressionService = Depends(get_service)
):
    """Record a day of activity"""
    return await service.advance_streak(user_id, payload.activity_date, payload.category)


@router.get("/api/v1/accounts/{user_id}/achievements", response_model=List[AchievementStatus])
async def get_achievements(
    user_id: str,
    service: ProgressionService = Depends(get_service)
):
    return await service.get_achievements(user_id)


@router.get("/api/v1/accounts/{user_id}/history", response_model=List[PointsTransaction])
async def get_points_history(
    user_id: str,
    limit: int = Query(default=50, ge=1, le=500),
    service: ProgressionService = Depends(get_service)
):
    """Points log, newest first"""
    return await service.get_points_history(user_id, limit=limit)


# ==========================================
# Rewards and redemptions
# ==========================================

@router.get("/api/v1/accounts/{user_id}/rewards", response_model=List[AvailableReward])
async def list_available_rewards(
    user_id: str,
    service: ProgressionService = Depends(get_service)
):
    """Rewards the user can redeem right now"""
    return await service.list_available_rewards(user_id)


@router.get("/api/v1/accounts/{user_id}/redemptions", response_model=List[Redemption])
async def list_redemptions(
    user_id: str,
    service: ProgressionService = Depends(get_service)
):
    return await service.list_redemptions(user_id)


@router.post(
    "/api/v1/accounts/{user_id}/redemptions",
    response_model=RedemptionResult,
    status_code=status.HTTP_201_CREATED
)
@limiter.limit(REDEEM_RATE_LIMIT)
async def redeem_reward(
    request: Request,
    user_id: str,
    payload: RedeemRequest,
    service: ProgressionService = Depends(get_service)
):
    """Spend points on a reward"""
    return await service.redeem(user_id, payload.reward_id)


@router.post("/api/v1/redemptions/{redemption_id}/use", response_model=Redemption)
@limiter.limit(WRITE_RATE_LIMIT)
async def mark_redemption_used(
    request: Request,
    redemption_id: str,
    service: ProgressionService = Depends(get_service)
):
    return await service.mark_redemption_used(redemption_id)


# ==========================================
# Leaderboard
# ==========================================

@router.get("/api/v1/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    period: str = Query(default="all_time", description="weekly, monthly or all_time"),
    limit: int = Query(default=DEFAULT_LIMIT),
    service: ProgressionService = Depends(get_service)
):
    """Top users for a period"""
    return await service.rank(period, limit)


# ==========================================
# Admin
# ==========================================

@router.get("/api/v1/admin/rewards", response_model=List[Reward])
async def list_rewards(
    include_inactive: bool = Query(default=False),
    service: ProgressionService = Depends(get_service)
):
    return await service.list_rewards(include_inactive=include_inactive)


@router.post("/api/v1/admin/rewards", response_model=Reward, status_code=status.HTTP_201_CREATED)
@limiter.limit(ADMIN_RATE_LIMIT)
async def create_reward(
    request: Request,
    payload: CreateRewardRequest,
    service: ProgressionService = Depends(get_service)
):
    return await service.create_reward(**payload.model_dump())


@router.patch("/api/v1/admin/rewards/{reward_id}", response_model=Reward)
@limiter.limit(ADMIN_RATE_LIMIT)
async def update_reward(
    request: Request,
    reward_id: str,
    payload: UpdateRewardRequest,
    service: ProgressionService = Depends(get_service)
):
    return await service.set_reward_active(reward_id, payload.is_active)


@router.post("/api/v1/admin/rewards/seed", response_model=List[Reward])
@limiter.limit(ADMIN_RATE_LIMIT)
async def seed_rewards(
    request: Request,
    service: ProgressionService = Depends(get_service)
):
    """Insert the standard catalog when it is empty"""
    return await service.seed_standard_rewards()


@router.post("/api/v1/admin/reset/{period}", response_model=PeriodResetResponse)
@limiter.limit(ADMIN_RATE_LIMIT)
async def reset_period(
    request: Request,
    period: str,
    service: ProgressionService = Depends(get_service)
):
    """Zero weekly or monthly points for every account"""
    result = await service.reset_period(period)
    logger.info(f"Manual {result['period']} reset via API: {result['reset']} accounts")
    return result
