from abc import ABC
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type
from sqlalchemy.orm import Session
from pydantic import BaseModel

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[T, SchemaType], ABC):
    """모든 리포지토리의 베이스 클래스 - Pydantic 응답 보장

    리포지토리는 flush까지만 수행하고 commit은 서비스의 작업 단위가 결정합니다.
    (잔액 변경과 거래 기록이 한 트랜잭션에 묶여야 하기 때문)
    """

    def __init__(
        self, model_class: Type[T], schema_class: Type[SchemaType], db: Session
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        """SQLAlchemy 모델을 Pydantic 스키마로 변환"""
        if model_instance is None:
            return None

        try:
            return self.schema_class.model_validate(model_instance)
        except Exception as e:
            # fallback: 컬럼 값으로 dict 구성 후 재시도
            model_dict = {}
            mapper = getattr(model_instance, "__mapper__", None)
            if mapper is not None:
                for column in mapper.columns:
                    value = getattr(model_instance, column.key, None)
                    if value is not None:
                        model_dict[column.key] = value
            try:
                return self.schema_class(**model_dict)
            except Exception:
                raise ValueError(
                    f"Failed to convert model to schema: {e}. Model dict: {model_dict}"
                )

    def _insert_ignoring_conflict(
        self,
        model_class: Type[Any],
        values: Dict[str, Any],
        index_elements: Optional[List[str]] = None,
    ) -> bool:
        """
        INSERT ... ON CONFLICT DO NOTHING

        유니크 제약이 동시성 중재자 역할을 합니다. 충돌 시 예외 대신 False를
        반환하므로 같은 트랜잭션의 앞선 쓰기가 롤백되지 않습니다.

        Returns:
            bool: 이번 호출로 행이 삽입되었으면 True, 이미 존재하면 False
        """
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        else:
            raise NotImplementedError(f"Unsupported dialect for conflict-free insert: {dialect}")

        stmt = dialect_insert(model_class.__table__).values(**values)
        stmt = stmt.on_conflict_do_nothing(index_elements=index_elements)
        result = self.db.execute(stmt)
        return result.rowcount == 1

    def get_by_field(self, field_name: str, value: Any) -> Optional[SchemaType]:
        """특정 필드로 조회 - Pydantic 스키마 반환"""
        model_instance = (
            self.db.query(self.model_class)
            .filter(getattr(self.model_class, field_name) == value)
            .first()
        )
        return self._to_schema(model_instance)

