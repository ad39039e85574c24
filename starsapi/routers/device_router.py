from fastapi import APIRouter, Depends

from starsapi.core.identity import RequestContext
from starsapi.deps import get_request_context
from starsapi.schemas.auth import DeviceInitResponse

router = APIRouter(prefix="/device", tags=["device"])


@router.post("/init", response_model=DeviceInitResponse)
def init_device(ctx: RequestContext = Depends(get_request_context)) -> DeviceInitResponse:
    """익명 디바이스 쿠키 확보 - 유효한 쿠키가 없을 때만 새로 발급"""
    return DeviceInitResponse(
        identity_kind=ctx.identity.kind.value,
        issued=ctx.issued_device_token is not None,
    )
