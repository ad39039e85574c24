from typing import Optional

from dependency_injector.wiring import inject, Provide
from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from starsapi.config import Settings
from starsapi.containers import Container
from starsapi.core.auth_middleware import get_current_user_optional
from starsapi.core.identity import RequestContext
from starsapi.database.session import get_db
from starsapi.schemas.auth import AuthenticatedUser
from starsapi.services.identity_service import IdentityResolver
from starsapi.services.reward_service import RewardService
from starsapi.services.star_service import StarService
from starsapi.utils.request_utils import get_client_ip


@inject
def get_settings_dep(
    settings: Settings = Depends(Provide[Container.config.config]),
) -> Settings:
    return settings


def get_star_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings_dep)
) -> StarService:
    return StarService(db=db, settings=settings)


def get_reward_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings_dep)
) -> RewardService:
    return RewardService(db=db, settings=settings)


def set_device_cookie(response: Response, cookie_value: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.DEVICE_COOKIE_NAME,
        value=cookie_value,
        max_age=settings.DEVICE_COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


@inject
def get_request_context(
    request: Request,
    response: Response,
    current_user: Optional[AuthenticatedUser] = Depends(get_current_user_optional),
    settings: Settings = Depends(get_settings_dep),
    resolver: IdentityResolver = Depends(Provide[Container.identity.identity_resolver]),
) -> RequestContext:
    """
    요청 아이덴티티 확인 - 요청마다 새 컨텍스트 생성

    새 디바이스 토큰이 발급되면 서명 쿠키를 응답에 씁니다.
    """
    context = resolver.resolve(
        user_id=current_user.user_id if current_user else None,
        cookie_value=request.cookies.get(settings.DEVICE_COOKIE_NAME),
        client_ip=get_client_ip(request),
    )
    request.state.identity_kind = context.identity.kind.value
    request.state.device_issued = context.issued_device_token is not None
    if context.issued_device_token:
        set_device_cookie(
            response, resolver.signer.sign(context.issued_device_token), settings
        )
    return context
