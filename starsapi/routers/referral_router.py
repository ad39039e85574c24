from fastapi import APIRouter, Depends

from starsapi.core.identity import RequestContext
from starsapi.deps import get_request_context, get_reward_service
from starsapi.schemas.rewards import (
    ReferralCodeResponse,
    ReferralProcessRequest,
    ReferralProcessResponse,
)
from starsapi.services.reward_service import RewardService

router = APIRouter(prefix="/referral", tags=["referral"])


@router.get("/code", response_model=ReferralCodeResponse)
def get_referral_code(
    ctx: RequestContext = Depends(get_request_context),
    reward_service: RewardService = Depends(get_reward_service),
) -> ReferralCodeResponse:
    """내 추천 코드 (없으면 생성) - 로그인 필요"""
    return reward_service.get_referral_code(ctx.identity)


@router.post("/process", response_model=ReferralProcessResponse)
def process_referral(
    request: ReferralProcessRequest,
    ctx: RequestContext = Depends(get_request_context),
    reward_service: RewardService = Depends(get_reward_service),
) -> ReferralProcessResponse:
    """
    추천 코드 사용 - 호출자가 피추천인

    HTTP Status:
        200: 추천인/피추천인 모두 적립
        401: 로그인 필요 (AUTH_REQUIRED)
        409: SELF_REFERRAL, INVALID_REFERRAL_CODE, ALREADY_PROCESSED, WEEKLY_REFERRAL_CAP_REACHED
    """
    return reward_service.process_referral(ctx.identity, request.referral_code)
