"""
보상 이벤트 리포지토리

광고 시청, 소셜 공유, 추천, 공유 콘텐츠 방문 기록을 다룹니다.
추천/방문 기록의 insert는 유니크 제약으로 중복을 판정하는 동시성 가드입니다.
"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from starsapi.core.identity import Identity
from starsapi.models.rewards import (
    AdWatch,
    ReferralBonus,
    ReferralCode,
    SharedContent,
    ShareVisitAward,
    SocialShare,
)
from starsapi.repositories.base import BaseRepository
from starsapi.schemas.rewards import (
    AdWatchRecord,
    ReferralCodeRecord,
    SharedContentRecord,
    ShareVisitAwardRecord,
    SocialShareRecord,
)


class AdWatchRepository(BaseRepository[AdWatch, AdWatchRecord]):
    def __init__(self, db: Session):
        super().__init__(AdWatch, AdWatchRecord, db)

    def count_for_day(self, identity: Identity, day: date) -> int:
        return (
            self.db.query(AdWatch)
            .filter(
                AdWatch.identity_kind == identity.kind.value,
                AdWatch.identity_key == identity.value,
                AdWatch.day_key == day,
            )
            .count()
        )

    def count_for_ip(self, ip_address: str, day: date) -> int:
        """
        IP 기준 일일 시청 수

        NAT 뒤 사용자들이 같은 IP를 공유하므로 약한 신호일 뿐입니다.
        """
        return (
            self.db.query(AdWatch)
            .filter(AdWatch.ip_address == ip_address, AdWatch.day_key == day)
            .count()
        )

    def create(
        self,
        identity: Identity,
        ip_address: Optional[str],
        ad_count: int,
        stars_earned: int,
        day: date,
    ) -> AdWatchRecord:
        record = AdWatch(
            identity_kind=identity.kind.value,
            identity_key=identity.value,
            ip_address=ip_address,
            ad_count=ad_count,
            stars_earned=stars_earned,
            day_key=day,
        )
        self.db.add(record)
        self.db.flush()
        return self._to_schema(record)


class SocialShareRepository(BaseRepository[SocialShare, SocialShareRecord]):
    def __init__(self, db: Session):
        super().__init__(SocialShare, SocialShareRecord, db)

    def count_for_day(self, identity: Identity, day: date) -> int:
        return (
            self.db.query(SocialShare)
            .filter(
                SocialShare.identity_kind == identity.kind.value,
                SocialShare.identity_key == identity.value,
                SocialShare.day_key == day,
            )
            .count()
        )

    def create(
        self,
        identity: Identity,
        platform: str,
        share_url: Optional[str],
        ip_address: Optional[str],
        stars_earned: int,
        day: date,
    ) -> SocialShareRecord:
        record = SocialShare(
            identity_kind=identity.kind.value,
            identity_key=identity.value,
            platform=platform,
            share_url=share_url,
            ip_address=ip_address,
            stars_earned=stars_earned,
            day_key=day,
        )
        self.db.add(record)
        self.db.flush()
        return self._to_schema(record)


class ReferralRepository(BaseRepository[ReferralCode, ReferralCodeRecord]):
    """추천 코드 및 추천 보상 기록"""

    def __init__(self, db: Session):
        super().__init__(ReferralCode, ReferralCodeRecord, db)

    def get_code_for_user(self, user_id: str) -> Optional[ReferralCodeRecord]:
        return self.get_by_field("user_id", user_id)

    def get_by_code(self, code: str, lock: bool = False) -> Optional[ReferralCodeRecord]:
        """
        추천 코드 조회

        lock=True면 행을 잠가 같은 추천인의 주간 한도 검사를 직렬화합니다.
        """
        query = self.db.query(ReferralCode).filter(ReferralCode.code == code)
        if lock:
            query = query.with_for_update()
        return self._to_schema(query.first())

    def create_code(self, user_id: str, code: str) -> bool:
        """사용자 또는 코드가 이미 존재하면 False"""
        return self._insert_ignoring_conflict(
            ReferralCode, {"user_id": user_id, "code": code}
        )

    def record_bonus(
        self, referrer_id: str, referred_user_id: str, bonus_amount: int, day: date
    ) -> bool:
        """
        추천 보상 기록 - 피추천인당 1회

        충돌 대상을 지정하지 않아 (추천인, 피추천인) 조합 중복과 다른 추천인의
        코드로 재사용하는 경우 모두 기록되지 않습니다.

        Returns:
            bool: 최초 기록이면 True, 이미 추천 보상을 받은 사용자면 False
        """
        return self._insert_ignoring_conflict(
            ReferralBonus,
            {
                "referrer_id": referrer_id,
                "referred_user_id": referred_user_id,
                "bonus_amount": bonus_amount,
                "day_key": day,
            },
        )

    def get_bonus_for_referred(self, referred_user_id: str) -> Optional[ReferralBonus]:
        return (
            self.db.query(ReferralBonus)
            .filter(ReferralBonus.referred_user_id == referred_user_id)
            .first()
        )

    def count_bonuses_between(self, referrer_id: str, start: date, end: date) -> int:
        return (
            self.db.query(ReferralBonus)
            .filter(
                ReferralBonus.referrer_id == referrer_id,
                ReferralBonus.day_key >= start,
                ReferralBonus.day_key <= end,
            )
            .count()
        )


class SharedContentRepository(BaseRepository[SharedContent, SharedContentRecord]):
    """공유 콘텐츠 소유자 조회 및 방문 보상 기록"""

    def __init__(self, db: Session):
        super().__init__(SharedContent, SharedContentRecord, db)

    def get_content(self, content_id: str, lock: bool = False) -> Optional[SharedContentRecord]:
        query = self.db.query(SharedContent).filter(SharedContent.id == content_id)
        if lock:
            query = query.with_for_update()
        return self._to_schema(query.first())

    def register(self, content_id: str, owner: Optional[Identity]) -> bool:
        """
        콘텐츠 등록 - 이미 등록된 콘텐츠의 소유자는 바꾸지 않습니다

        Returns:
            bool: 이번 호출로 등록되었는지 여부
        """
        return self._insert_ignoring_conflict(
            SharedContent,
            {
                "id": content_id,
                "owner_kind": owner.kind.value if owner else None,
                "owner_key": owner.value if owner else None,
            },
            index_elements=["id"],
        )

    def record_visit(self, content_id: str, viewer: Identity, outcome: str, day: date) -> bool:
        """
        방문 기록 insert - 보상 지급 여부를 결정하는 중재자

        Returns:
            bool: 이 방문자의 첫 방문이면 True
        """
        return self._insert_ignoring_conflict(
            ShareVisitAward,
            {
                "shared_content_id": content_id,
                "viewer_kind": viewer.kind.value,
                "viewer_key": viewer.value,
                "stars_awarded": 0,
                "outcome": outcome,
                "day_key": day,
            },
            index_elements=["shared_content_id", "viewer_kind", "viewer_key"],
        )

    def finalize_visit(
        self,
        content_id: str,
        viewer: Identity,
        owner: Optional[Identity],
        stars_awarded: int,
        outcome: str,
    ) -> None:
        self.db.query(ShareVisitAward).filter(
            ShareVisitAward.shared_content_id == content_id,
            ShareVisitAward.viewer_kind == viewer.kind.value,
            ShareVisitAward.viewer_key == viewer.value,
        ).update(
            {
                ShareVisitAward.owner_kind: owner.kind.value if owner else None,
                ShareVisitAward.owner_key: owner.value if owner else None,
                ShareVisitAward.stars_awarded: stars_awarded,
                ShareVisitAward.outcome: outcome,
            },
            synchronize_session=False,
        )
        self.db.flush()

    def get_visit(self, content_id: str, viewer: Identity) -> Optional[ShareVisitAwardRecord]:
        row = (
            self.db.query(ShareVisitAward)
            .filter(
                ShareVisitAward.shared_content_id == content_id,
                ShareVisitAward.viewer_kind == viewer.kind.value,
                ShareVisitAward.viewer_key == viewer.value,
            )
            .first()
        )
        if row is None:
            return None
        return ShareVisitAwardRecord.model_validate(row)

    def sum_awarded(self, content_id: str) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(ShareVisitAward.stars_awarded), 0))
            .filter(ShareVisitAward.shared_content_id == content_id)
            .scalar()
        )
        return int(total or 0)
