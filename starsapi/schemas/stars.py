from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class StarBalanceSchema(BaseModel):
    """스타 잔액"""

    identity_kind: str = Field(..., description="device | user")
    identity_key: str = Field(..., description="디바이스 토큰 또는 사용자 ID")
    current_stars: int = Field(..., ge=0, description="현재 스타 잔액")
    updated_at: Optional[datetime] = Field(None, description="마지막 변경 시각")

    class Config:
        from_attributes = True


class StarTransactionEntry(BaseModel):
    """스타 거래 원장 항목"""

    id: int = Field(..., description="거래 ID")
    identity_kind: str
    identity_key: str
    amount: int = Field(..., description="적용된 변동량 (양수=적립, 음수=차감)")
    balance_after: int = Field(..., description="거래 후 잔액")
    type: str = Field(..., description="거래 유형")
    description: str = Field("", description="거래 설명")
    ref_id: Optional[str] = Field(None, description="중복 방지 키")
    created_at: datetime = Field(..., description="생성 시각")

    class Config:
        from_attributes = True


class StarBalanceResponse(BaseModel):
    """잔액 조회 응답"""

    success: bool = True
    stars: int = Field(..., description="현재 스타 잔액")
    can_claim_daily: bool = Field(..., description="오늘 일일 스타 수령 가능 여부")
    daily_stars_claimed: int = Field(0, description="오늘 수령한 일일 스타")
    daily_ad_watches: int = Field(0, description="오늘 광고 시청 횟수")


class StarMutationResponse(BaseModel):
    """잔액 변경 응답"""

    success: bool = True
    stars: int = Field(..., description="변경 후 잔액")
    delta: int = Field(0, description="실제 적용된 변동량")
    message: str = ""


class StarAmountRequest(BaseModel):
    # 범위 검증은 서비스에서 (INVALID_AMOUNT), 여기서는 "2"나 2.5 같은 타입만 거부
    amount: int = Field(..., strict=True, description="스타 수량 (양의 정수)")


class StarSpendRequest(StarAmountRequest):
    reason: Optional[str] = Field(None, max_length=100, description="사용 사유 (예: reading_cost)")


class StarSetRequest(BaseModel):
    balance: int = Field(..., strict=True, description="설정할 절대 잔액 (0 이상)")


class DailyClaimResponse(BaseModel):
    success: bool = Field(..., description="이번 요청으로 수령했는지 여부")
    message: str
    stars: int = Field(..., description="현재 잔액")
    daily_stars_claimed: int = Field(..., description="오늘 수령한 스타")


class StarTransactionListResponse(BaseModel):
    success: bool = True
    transactions: List[StarTransactionEntry]


class StarIntegrityCheckResponse(BaseModel):
    """원장 정합성 검증 응답"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    identity_key: str
    calculated_balance: int = Field(..., description="거래 합계로 계산한 잔액")
    recorded_balance: int = Field(..., description="잔액 테이블 값")
    entry_count: int
    verified_at: str
