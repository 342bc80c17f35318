"""
OHLCV 시계열 저장소의 SQLAlchemy 구현체.

- 일봉: daily_bars (PK symbol, date)
- 시간봉: intraday_bars (PK symbol, date, timestamp)
벌크 upsert 는 DB 방언에 맞춰 MySQL ON DUPLICATE KEY UPDATE 또는
PostgreSQL/SQLite ON CONFLICT DO UPDATE 로 실행합니다.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import and_, delete, select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.market_data.config.settings import OHLCV_COLLECTION
from domain.market_data.exceptions import StoreWriteError
from domain.market_data.models.ohlcv_bar import OhlcvBar, to_price
from domain.market_data.repository.market_data_repository import MarketDataRepository, UpsertResult
from infrastructure.db.db_manager import Database
from infrastructure.db.models.daily_bar import DailyBar
from infrastructure.db.models.intraday_bar import IntradayBar
from infrastructure.logging import get_logger

logger = get_logger(__name__)

VALUE_COLUMNS = ['open', 'high', 'low', 'close', 'volume', 'adjusted_close']


def _to_storage_timestamp(ts: datetime) -> datetime:
    """UTC 로 변환 후 tzinfo 를 제거합니다. 모든 방언에서 같은 키로 비교되도록 naive UTC 로 저장합니다."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def _daily_record(bar: OhlcvBar) -> Dict:
    return {
        'symbol': bar.symbol, 'date': bar.date,
        'open': bar.open, 'high': bar.high, 'low': bar.low, 'close': bar.close,
        'volume': bar.volume, 'adjusted_close': bar.adjusted_close,
    }


def _intraday_record(bar: OhlcvBar) -> Dict:
    record = _daily_record(bar)
    record['timestamp'] = _to_storage_timestamp(bar.timestamp)
    return record


def _row_to_bar(row, intraday: bool) -> OhlcvBar:
    return OhlcvBar(
        symbol=row.symbol,
        date=row.date,
        timestamp=row.timestamp if intraday else None,
        open=row.open, high=row.high, low=row.low, close=row.close,
        volume=row.volume,
        adjusted_close=row.adjusted_close,
    )


class SQLMarketDataRepository(MarketDataRepository):
    """MarketDataRepository 의 SQLAlchemy 구현체입니다."""

    def __init__(self, database: Database,
                 daily_batch_size: Optional[int] = None,
                 intraday_batch_size: Optional[int] = None):
        self.database = database
        self.daily_batch_size = daily_batch_size or OHLCV_COLLECTION["STORE"]["DAILY_BATCH_SIZE"]
        self.intraday_batch_size = intraday_batch_size or OHLCV_COLLECTION["STORE"]["INTRADAY_BATCH_SIZE"]

    # ------------------------------------------------------------------
    # 쓰기
    # ------------------------------------------------------------------
    def _insert(self, model):
        dialect = self.database.dialect_name
        if dialect == 'mysql':
            return mysql.insert(model)
        if dialect == 'postgresql':
            return postgresql.insert(model)
        if dialect == 'sqlite':
            return sqlite.insert(model)
        raise StoreWriteError(f"Unsupported database dialect for upsert: {dialect}")

    def _execute_bulk_upsert(self, db: Session, model, key_columns: List[str], records: List[Dict]) -> None:
        """
        주어진 레코드들을 벌크 업서트로 처리합니다. 기본키를 제외한 값 컬럼을 덮어씁니다.
        """
        stmt = self._insert(model).values(records)
        if self.database.dialect_name == 'mysql':
            update_dict = {col: stmt.inserted[col] for col in VALUE_COLUMNS}
            stmt = stmt.on_duplicate_key_update(**update_dict)
        else:
            update_dict = {col: stmt.excluded[col] for col in VALUE_COLUMNS}
            stmt = stmt.on_conflict_do_update(index_elements=key_columns, set_=update_dict)
        db.execute(stmt)

    def _existing_daily_keys(self, db: Session, symbol: str, days: List[date]) -> Set[date]:
        rows = db.execute(
            select(DailyBar.date).where(DailyBar.symbol == symbol, DailyBar.date.in_(days))
        ).scalars().all()
        return set(rows)

    def _existing_intraday_keys(self, db: Session, symbol: str, keys: List[Tuple[date, datetime]]) -> Set[Tuple[date, datetime]]:
        days = sorted({day for day, _ in keys})
        rows = db.execute(
            select(IntradayBar.date, IntradayBar.timestamp)
            .where(IntradayBar.symbol == symbol, IntradayBar.date.in_(days))
        ).all()
        return {(row.date, row.timestamp) for row in rows}

    def upsert_bars(self, symbol: str, bars: List[OhlcvBar]) -> UpsertResult:
        """
        일봉/시간봉을 식별자 기준으로 병합합니다.
        배치마다 커밋하므로 중간 배치가 실패해도 이미 커밋된 배치는 유지됩니다.
        """
        symbol = symbol.upper()
        # 같은 식별자가 여러 번 들어오면 마지막 값을 사용
        daily: Dict[date, Dict] = {}
        intraday: Dict[Tuple[date, datetime], Dict] = {}
        for bar in bars:
            if bar.symbol != symbol:
                bar = OhlcvBar(symbol=symbol, date=bar.date, open=bar.open, high=bar.high, low=bar.low,
                               close=bar.close, volume=bar.volume, adjusted_close=bar.adjusted_close,
                               timestamp=bar.timestamp)
            if bar.is_intraday:
                record = _intraday_record(bar)
                intraday[(record['date'], record['timestamp'])] = record
            else:
                daily[bar.date] = _daily_record(bar)

        result = UpsertResult()
        if not daily and not intraday:
            return result

        with self.database.get_db() as db:
            try:
                daily_records = [daily[key] for key in sorted(daily)]
                for i in range(0, len(daily_records), self.daily_batch_size):
                    batch = daily_records[i:i + self.daily_batch_size]
                    existing = self._existing_daily_keys(db, symbol, [r['date'] for r in batch])
                    self._execute_bulk_upsert(db, DailyBar, ['symbol', 'date'], batch)
                    db.commit()
                    result += UpsertResult(inserted=len(batch) - len(existing), updated=len(existing))

                intraday_records = [intraday[key] for key in sorted(intraday)]
                for i in range(0, len(intraday_records), self.intraday_batch_size):
                    batch = intraday_records[i:i + self.intraday_batch_size]
                    keys = [(r['date'], r['timestamp']) for r in batch]
                    existing = self._existing_intraday_keys(db, symbol, keys) & set(keys)
                    self._execute_bulk_upsert(db, IntradayBar, ['symbol', 'date', 'timestamp'], batch)
                    db.commit()
                    result += UpsertResult(inserted=len(batch) - len(existing), updated=len(existing))
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Bulk upsert failed for {symbol}: {e}", exc_info=True)
                raise StoreWriteError(f"Bulk upsert failed: {e}", symbol=symbol) from e

        logger.debug(f"Upserted {symbol}: inserted={result.inserted}, updated={result.updated}")
        return result

    def replace_intraday_for_date(self, symbol: str, day: date, bars: List[OhlcvBar]) -> int:
        """기존 시간봉 삭제와 새 시간봉 삽입을 한 트랜잭션으로 처리합니다."""
        symbol = symbol.upper()
        records: Dict[datetime, Dict] = {}
        for bar in bars:
            if not bar.is_intraday:
                continue
            record = _intraday_record(bar)
            record['symbol'] = symbol
            record['date'] = day
            records[record['timestamp']] = record
        ordered = [records[ts] for ts in sorted(records)]

        with self.database.get_db() as db:
            try:
                deleted = db.execute(
                    delete(IntradayBar).where(IntradayBar.symbol == symbol, IntradayBar.date == day)
                ).rowcount
                for i in range(0, len(ordered), self.intraday_batch_size):
                    db.execute(IntradayBar.__table__.insert(), ordered[i:i + self.intraday_batch_size])
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Intraday replace failed for {symbol} on {day}: {e}", exc_info=True)
                raise StoreWriteError(f"Intraday replace failed: {e}", symbol=symbol) from e

        logger.debug(f"Replaced intraday bars for {symbol} on {day}: deleted={deleted}, inserted={len(ordered)}")
        return len(ordered)

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------
    def query_range(self, symbol: str, start: date, end: date,
                    include_daily: bool = True, include_intraday: bool = True) -> List[OhlcvBar]:
        symbol = symbol.upper()
        bars: List[OhlcvBar] = []
        with self.database.get_db() as db:
            if include_daily:
                rows = db.execute(
                    select(DailyBar)
                    .where(and_(DailyBar.symbol == symbol, DailyBar.date >= start, DailyBar.date <= end))
                ).scalars().all()
                bars.extend(_row_to_bar(row, intraday=False) for row in rows)
            if include_intraday:
                rows = db.execute(
                    select(IntradayBar)
                    .where(and_(IntradayBar.symbol == symbol, IntradayBar.date >= start, IntradayBar.date <= end))
                ).scalars().all()
                bars.extend(_row_to_bar(row, intraday=True) for row in rows)

        # 같은 날짜에서는 일봉이 시간봉보다 먼저 옵니다.
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        bars.sort(key=lambda b: (b.date, b.timestamp is not None, b.timestamp or epoch))
        return bars

    def get_daily_bar(self, symbol: str, day: date) -> Optional[OhlcvBar]:
        with self.database.get_db() as db:
            row = db.get(DailyBar, (symbol.upper(), day))
            return _row_to_bar(row, intraday=False) if row else None

    def get_latest_close(self, symbol: str, before: Optional[date] = None) -> Optional[Decimal]:
        query = select(DailyBar.close).where(DailyBar.symbol == symbol.upper())
        if before is not None:
            query = query.where(DailyBar.date < before)
        with self.database.get_db() as db:
            close = db.execute(query.order_by(DailyBar.date.desc()).limit(1)).scalar()
        return to_price(close) if close is not None else None
