import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from starsapi.core.exceptions import StoreUnavailableError
from starsapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session):
    """
    잔액 변경 작업 단위

    블록이 정상 종료되면 commit, 예외가 발생하면 rollback 합니다.
    저장소 오류는 StoreUnavailableError로 변환되며 자동 재시도하지 않습니다.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Ledger store error, transaction rolled back: {str(e)}")
        raise StoreUnavailableError() from e
    except Exception:
        db.rollback()
        raise
