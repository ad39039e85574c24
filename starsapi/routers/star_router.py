"""
스타 잔액 API 라우터

- GET  /stars/balance: 잔액 + 오늘의 클레임/광고 현황
- POST /stars/get-or-create: 잔액 행 확보
- POST /stars/add: 상한(12) 적용 충전
- POST /stars/spend: 사용 (잔액 부족 시 400)
- POST /stars/set: 절대값 설정 (로그인 필요)
- POST /stars/refresh: 상한까지 충전
- POST /stars/claim-daily: 일일 스타 수령
- POST /stars/watch-ad: 광고 시청 보상
- POST /stars/social-share: 소셜 공유 보상
- GET  /stars/transactions: 거래 내역
- GET  /stars/integrity: 원장 정합성 검증

아이덴티티는 Bearer 토큰(사용자) 또는 서명된 디바이스 쿠키(익명)로 결정됩니다.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from starsapi.core.identity import RequestContext
from starsapi.deps import get_request_context, get_reward_service, get_star_service
from starsapi.schemas.rewards import AdWatchResponse, SocialShareRequest, SocialShareResponse
from starsapi.schemas.stars import (
    DailyClaimResponse,
    StarAmountRequest,
    StarBalanceResponse,
    StarBalanceSchema,
    StarIntegrityCheckResponse,
    StarMutationResponse,
    StarSetRequest,
    StarSpendRequest,
    StarTransactionListResponse,
)
from starsapi.services.reward_service import RewardService
from starsapi.services.star_service import StarService

router = APIRouter(prefix="/stars", tags=["stars"])


@router.get("/balance", response_model=StarBalanceResponse)
def get_balance(
    ctx: RequestContext = Depends(get_request_context),
    star_service: StarService = Depends(get_star_service),
) -> StarBalanceResponse:
    return star_service.get_balance(ctx.identity)


@router.post("/get-or-create", response_model=StarBalanceSchema)
def get_or_create(
    ctx: RequestContext = Depends(get_request_context),
    star_service: StarService = Depends(get_star_service),
) -> StarBalanceSchema:
    return star_service.get_or_create(ctx.identity)


@router.post("/add", response_model=StarMutationResponse)
def add_stars(
    request: StarAmountRequest,
    ctx: RequestContext = Depends(get_request_context),
    star_service: StarService = Depends(get_star_service),
) -> StarMutationResponse:
    """충전 - 결과 잔액은 상한을 넘지 않음. 구매는 /stars/set 사용"""
    return star_service.add(ctx.identity, request.amount)


@router.post("/spend", response_model=StarMutationResponse)
def spend_stars(
    request: StarSpendRequest,
    ctx: RequestContext = Depends(get_request_context),
    star_service: StarService = Depends(get_star_service),
) -> StarMutationResponse:
    return star_service.spend(ctx.identity, request.amount, reason=request.reason)


@router.post("/set", response_model=StarMutationResponse)
def set_balance(
    request: StarSetRequest,
    ctx: RequestContext = Depends(get_request_context),
    star_service: StarService = Depends(get_star_service),
) -> StarMutationResponse:
    """
    절대 잔액 설정 (구매, 익명 잔액 병합 등)

    HTTP Status:
        200: 설정 완료
        401: 로그인 필요 (AUTH_REQUIRED)
        422: 음수 잔액 (INVALID_AMOUNT)
    """
    return star_service.set_balance(ctx.identity, request.balance)


@router.post("/refresh", response_model=StarMutationResponse)
def refresh_stars(
    ctx: RequestContext = Depends(get_request_context),
    star_service: StarService = Depends(get_star_service),
) -> StarMutationResponse:
    return star_service.refresh(ctx.identity)


@router.post("/claim-daily", response_model=DailyClaimResponse)
def claim_daily(
    ctx: RequestContext = Depends(get_request_context),
    star_service: StarService = Depends(get_star_service),
) -> DailyClaimResponse:
    """일일 스타 수령 - 이미 수령했으면 success=false (에러 아님)"""
    return star_service.claim_daily(ctx.identity)


@router.post("/watch-ad", response_model=AdWatchResponse)
def watch_ad(
    ctx: RequestContext = Depends(get_request_context),
    reward_service: RewardService = Depends(get_reward_service),
) -> AdWatchResponse:
    """
    광고 시청 보상

    HTTP Status:
        200: 적립 완료
        409: 오늘 시청 한도 도달 (DAILY_LIMIT_REACHED)
    """
    return reward_service.watch_ad(ctx.identity, client_ip=ctx.client_ip)


@router.post("/social-share", response_model=SocialShareResponse)
def social_share(
    request: SocialShareRequest,
    ctx: RequestContext = Depends(get_request_context),
    reward_service: RewardService = Depends(get_reward_service),
) -> SocialShareResponse:
    return reward_service.social_share(
        ctx.identity,
        request.platform,
        share_url=request.share_url,
        client_ip=ctx.client_ip,
    )


@router.get("/transactions", response_model=StarTransactionListResponse)
def list_transactions(
    limit: Optional[int] = Query(None, ge=1, description="최대 건수 (기본 50, 최대 100)"),
    ctx: RequestContext = Depends(get_request_context),
    star_service: StarService = Depends(get_star_service),
) -> StarTransactionListResponse:
    transactions = star_service.list_transactions(ctx.identity, limit)
    return StarTransactionListResponse(transactions=transactions)


@router.get("/integrity", response_model=StarIntegrityCheckResponse)
def verify_integrity(
    ctx: RequestContext = Depends(get_request_context),
    star_service: StarService = Depends(get_star_service),
) -> StarIntegrityCheckResponse:
    return star_service.verify_integrity(ctx.identity)
