from typing import List

from sqlalchemy import select

from domain.market_data.repository.symbol_universe_repository import SymbolUniverseRepository
from infrastructure.db.db_manager import Database
from infrastructure.db.models.asset_info import AssetInfo
from infrastructure.db.models.watchlist import WatchlistEntry
from infrastructure.logging import get_logger

logger = get_logger(__name__)


class SQLSymbolUniverseRepository(SymbolUniverseRepository):
    """asset_info / watchlist 테이블 기반 심볼 집합 조회"""

    def __init__(self, database: Database):
        self.database = database

    def get_all_symbols(self) -> List[str]:
        with self.database.get_db() as db:
            symbols = db.execute(
                select(AssetInfo.symbol).where(AssetInfo.is_active.is_(True)).order_by(AssetInfo.symbol)
            ).scalars().all()
        return [s.upper() for s in symbols]

    def get_active_symbols(self, limit: int = 100) -> List[str]:
        """관심종목 심볼을 먼저, 이어서 시가총액 상위 limit 개를 중복 없이 반환합니다."""
        with self.database.get_db() as db:
            watchlisted = db.execute(
                select(WatchlistEntry.symbol).distinct().order_by(WatchlistEntry.symbol)
            ).scalars().all()
            top_by_market_cap = db.execute(
                select(AssetInfo.symbol)
                .where(AssetInfo.is_active.is_(True), AssetInfo.market_cap.isnot(None))
                .order_by(AssetInfo.market_cap.desc(), AssetInfo.symbol)
                .limit(limit)
            ).scalars().all()

        active: List[str] = []
        seen = set()
        for symbol in list(watchlisted) + list(top_by_market_cap):
            symbol = symbol.upper()
            if symbol not in seen:
                seen.add(symbol)
                active.append(symbol)
        logger.debug(f"Active symbols: {len(watchlisted)} watchlisted, {len(active)} total")
        return active
