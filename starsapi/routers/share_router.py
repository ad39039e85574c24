"""
공유 콘텐츠 API 라우터

- POST /shares: 공유 콘텐츠 소유자 등록 (호출자가 소유자)
- POST /shares/{content_id}/visit: 방문 보상 (호출자가 방문자)
- GET  /shares/{content_id}/earned: 콘텐츠별 누적 지급 스타

소유자는 등록 기록으로만 결정되며 방문 요청의 입력값은 신뢰하지 않습니다.
"""

from fastapi import APIRouter, Depends, Path

from starsapi.core.identity import RequestContext
from starsapi.deps import get_request_context, get_reward_service
from starsapi.schemas.rewards import (
    SharedContentCreateRequest,
    SharedContentResponse,
    ShareEarnedStarsResponse,
    ShareVisitAwardResponse,
)
from starsapi.services.reward_service import RewardService

router = APIRouter(prefix="/shares", tags=["shares"])


@router.post("", response_model=SharedContentResponse)
def register_shared_content(
    request: SharedContentCreateRequest,
    ctx: RequestContext = Depends(get_request_context),
    reward_service: RewardService = Depends(get_reward_service),
) -> SharedContentResponse:
    return reward_service.register_shared_content(ctx.identity, request.content_id)


@router.post("/{content_id}/visit", response_model=ShareVisitAwardResponse)
def award_on_visit(
    content_id: str = Path(..., min_length=1, max_length=255),
    ctx: RequestContext = Depends(get_request_context),
    reward_service: RewardService = Depends(get_reward_service),
) -> ShareVisitAwardResponse:
    """
    방문 보상 - 항상 200, 결과는 outcome으로 구분

    outcome: credited | already_awarded | per_content_cap_reached | owner_unresolved | self_visit
    """
    return reward_service.award_on_visit(ctx.identity, content_id)


@router.get("/{content_id}/earned", response_model=ShareEarnedStarsResponse)
def get_earned_stars(
    content_id: str = Path(..., min_length=1, max_length=255),
    reward_service: RewardService = Depends(get_reward_service),
) -> ShareEarnedStarsResponse:
    return reward_service.get_earned_stars(content_id)
