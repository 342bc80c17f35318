from sqlalchemy import BigInteger, Boolean, Column, DateTime, String
from sqlalchemy.sql import func

from infrastructure.db.db_manager import Base


class AssetInfo(Base):
    """심볼 메타데이터 테이블. 과거 데이터 백필 대상 심볼 집합의 기준입니다."""
    __tablename__ = 'asset_info'

    symbol = Column(String(20), primary_key=True)
    name = Column(String(255))
    asset_type = Column(String(20))  # stock, etf, index, crypto, commodity
    exchange = Column(String(50))
    market_cap = Column(BigInteger, nullable=True)  # 시가 총액 (활성 심볼 선정 기준)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
