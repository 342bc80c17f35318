from sqlalchemy import BigInteger, Column, Date, DateTime, Index, Numeric, PrimaryKeyConstraint, String

from infrastructure.db.db_manager import Base


class IntradayBar(Base):
    """
    시간봉 OHLCV 테이블.
    timestamp 는 UTC(naive)로 저장하며, date 는 해당 봉이 속한 시장 기준 거래일입니다.
    """
    __tablename__ = 'intraday_bars'

    symbol = Column(String(20), nullable=False)
    date = Column(Date, nullable=False)
    timestamp = Column(DateTime, nullable=False)

    open = Column(Numeric(24, 8), nullable=False)
    high = Column(Numeric(24, 8), nullable=False)
    low = Column(Numeric(24, 8), nullable=False)
    close = Column(Numeric(24, 8), nullable=False)
    volume = Column(BigInteger, nullable=False, default=0)
    adjusted_close = Column(Numeric(24, 8))

    __table_args__ = (
        PrimaryKeyConstraint('symbol', 'date', 'timestamp'),
        Index('ix_intraday_bars_symbol_date', 'symbol', 'date'),
    )
