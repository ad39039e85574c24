import logging
import logging.config
import sys


class MaxLevelFilter(logging.Filter):
    """지정 레벨 미만만 통과 - WARNING 이상은 error_console(stderr)이 담당"""

    def __init__(self, level: str = "WARNING"):
        super().__init__()
        self.max_level = logging.getLevelName(level)

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.max_level


def setup_logging(log_level: str = "INFO", sql_echo: bool = False):
    """
    애플리케이션 로깅 설정

    - stdout: INFO 이하 (요청 로그, 잔액 변경 로그)
    - stderr: WARNING 이상 (정책 거절, 저장소 오류) - 파일/라인 포함
    - 요청 로그는 LoggingMiddleware가 남기므로 uvicorn.access는 WARNING으로 낮춤
    """
    log_level = log_level.upper()

    LOGGING_CONFIG = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(pathname)s:%(lineno)d\n%(message)s",
            },
            "simple": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s",
            },
        },
        "filters": {
            "below_warning": {
                "()": MaxLevelFilter,
                "level": "WARNING",
            },
        },
        "handlers": {
            "console": {
                "formatter": "simple",
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "filters": ["below_warning"],
            },
            "error_console": {
                "formatter": "detailed",
                "class": "logging.StreamHandler",
                "stream": sys.stderr,
                "level": "WARNING",
            },
        },
        "loggers": {
            "": {  # root logger
                "handlers": ["console", "error_console"],
                "level": log_level,
                "propagate": True,
            },
            "uvicorn.error": {
                "handlers": ["console", "error_console"],
                "level": log_level,
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "INFO" if sql_echo else "WARNING",
                "propagate": False,
            },
            "starsapi": {
                "handlers": ["console", "error_console"],
                "level": log_level,
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(LOGGING_CONFIG)
