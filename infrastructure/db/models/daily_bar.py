from sqlalchemy import BigInteger, Column, Date, Numeric, PrimaryKeyConstraint, String

from infrastructure.db.db_manager import Base


class DailyBar(Base):
    """
    일봉 OHLCV 테이블.
    (symbol, date) 당 한 행만 존재하며 재수집 시 덮어씁니다.
    """
    __tablename__ = 'daily_bars'

    symbol = Column(String(20), nullable=False)
    date = Column(Date, nullable=False)

    open = Column(Numeric(24, 8), nullable=False)
    high = Column(Numeric(24, 8), nullable=False)
    low = Column(Numeric(24, 8), nullable=False)
    close = Column(Numeric(24, 8), nullable=False)
    volume = Column(BigInteger, nullable=False, default=0)
    adjusted_close = Column(Numeric(24, 8))

    __table_args__ = (
        PrimaryKeyConstraint('symbol', 'date'),
        {},
    )
