"""
데이터베이스 연결 및 세션 관리, 테이블 생성 등
데이터베이스 관련 로직을 총괄하는 모듈입니다.

엔진/세션은 모듈 전역이 아니라 Database 인스턴스가 소유하며,
프로세스 부트스트랩에서 한 번 생성해 레포지토리에 주입합니다.
"""
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from infrastructure.logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()


class Database:

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None, echo: bool = False):
        if engine is None:
            if not url:
                raise ValueError("Either url or engine must be provided")
            engine = create_engine(url, echo=echo, pool_pre_ping=True)
        self.engine = engine
        self.SessionLocal = sessionmaker(autoflush=False, bind=engine)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def create_all(self) -> None:
        """
        Base 에 등록된 모든 테이블을 생성합니다.
        models 패키지를 import 해야 테이블이 Base.metadata 에 등록됩니다.
        """
        from infrastructure.db import models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Database tables checked/created successfully ({self.dialect_name}).")

    @contextmanager
    def get_db(self):
        """데이터베이스 세션을 생성하고 반환하는 제너레이터입니다."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()
