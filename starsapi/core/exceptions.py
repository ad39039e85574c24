from fastapi import HTTPException, status
from typing import Optional, Dict, Any

class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )

class AuthorizationRequiredError(BaseAPIException):
    """인증된 사용자 아이덴티티가 필요한 작업 (예: 절대값 set)"""
    def __init__(self, message: str = "Authenticated user required", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_REQUIRED",
            message=message,
            details=details
        )

class IdentityUnresolvedError(BaseAPIException):
    """익명 아이덴티티를 확립할 수 없음 - 키 없는 잔액 변경은 허용하지 않음"""
    def __init__(self, message: str = "Unable to resolve caller identity", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="IDENTITY_UNRESOLVED",
            message=message,
            details=details
        )

class ValidationError(BaseAPIException):
    """Validation errors"""
    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict] = None,
        error_code: str = "VALIDATION_001",
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
            message=message,
            details=details
        )

class InvalidAmountError(ValidationError):
    def __init__(self, message: str = "Amount must be a positive integer", details: Optional[Dict] = None):
        super().__init__(message=message, details=details, error_code="INVALID_AMOUNT")

class MissingPlatformError(ValidationError):
    def __init__(self, message: str = "Platform is required", details: Optional[Dict] = None):
        super().__init__(message=message, details=details, error_code="MISSING_PLATFORM")

class PolicyViolationError(BaseAPIException):
    """
    정책 위반 - 예상 가능한 비즈니스 결과 (장애 아님)

    아무 변경도 일어나지 않았음을 의미하며, 클라이언트는 이유 코드로 분기합니다.
    """
    def __init__(self, error_code: str, message: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            message=message,
            details=details
        )

class InsufficientBalanceError(BaseAPIException):
    """Insufficient balance errors"""
    def __init__(self, message: str = "Insufficient balance", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="INSUFFICIENT_BALANCE",
            message=message,
            details=details
        )

class DailyLimitReachedError(PolicyViolationError):
    def __init__(self, message: str = "Daily ad watch limit reached", details: Optional[Dict] = None):
        super().__init__("DAILY_LIMIT_REACHED", message, details)

class DailyShareLimitReachedError(PolicyViolationError):
    def __init__(self, message: str = "Daily social share limit reached", details: Optional[Dict] = None):
        super().__init__("DAILY_SHARE_LIMIT_REACHED", message, details)

class SelfReferralError(PolicyViolationError):
    def __init__(self, message: str = "Cannot refer yourself", details: Optional[Dict] = None):
        super().__init__("SELF_REFERRAL", message, details)

class InvalidReferralCodeError(PolicyViolationError):
    def __init__(self, message: str = "Invalid referral code", details: Optional[Dict] = None):
        super().__init__("INVALID_REFERRAL_CODE", message, details)

class AlreadyProcessedError(PolicyViolationError):
    def __init__(self, message: str = "Referral already processed", details: Optional[Dict] = None):
        super().__init__("ALREADY_PROCESSED", message, details)

class WeeklyReferralCapReachedError(PolicyViolationError):
    def __init__(self, message: str = "Weekly referral limit reached", details: Optional[Dict] = None):
        super().__init__("WEEKLY_REFERRAL_CAP_REACHED", message, details)

class ConflictError(BaseAPIException):
    """Resource conflict errors"""
    def __init__(self, message: str = "Resource conflict", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT_001",
            message=message,
            details=details
        )

class StoreUnavailableError(BaseAPIException):
    """
    저장소 오류/타임아웃 - 사용자가 나중에 재시도할 수 있는 실패

    자동 재시도하지 않음 (add는 멱등이 아님)
    """
    def __init__(self, message: str = "Ledger store unavailable, please try again later", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="STORE_UNAVAILABLE",
            message=message,
            details=details
        )

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )
