# main.py

"""
시장 데이터 수집/동기화 파이프라인 실행 진입점.

사용 예시:
# 스케줄러 시작 (Ctrl+C 로 종료)
python main.py

# 테이블만 생성
python main.py --init-db

# 작업 1회 수동 실행
python main.py --trigger hourly
"""
import argparse
import sys
import time
from dataclasses import dataclass
from typing import Optional

import redis

from common.config.settings import PipelineSettings, load_settings
from domain.market_data.models.job_run import JobType
from domain.market_data.service.historical_ingestion_service import HistoricalIngestionEngine
from domain.market_data.service.market_view_service import MarketViewService
from domain.market_data.service.realtime_update_service import RealtimeUpdater
from domain.market_data.source.base_source import MarketDataSource
from domain.market_data.source.factory import build_market_data_source
from infrastructure.cache.redis_cache import RedisCacheTier, create_redis_client
from infrastructure.db.db_manager import Database
from infrastructure.db.repository.sql_market_data_repository import SQLMarketDataRepository
from infrastructure.db.repository.sql_symbol_universe_repository import SQLSymbolUniverseRepository
from infrastructure.logging import get_logger, setup_logging
from infrastructure.scheduler.scheduler_manager import MarketDataScheduler

logger = get_logger(__name__)


@dataclass
class Pipeline:
    """부트스트랩에서 생성한 핸들 묶음. 수명은 프로세스가 소유합니다."""
    settings: PipelineSettings
    database: Database
    source: MarketDataSource
    cache: RedisCacheTier
    repository: SQLMarketDataRepository
    universe: SQLSymbolUniverseRepository
    historical_engine: HistoricalIngestionEngine
    realtime_updater: RealtimeUpdater
    market_view: MarketViewService
    scheduler: MarketDataScheduler

    def close(self) -> None:
        self.scheduler.stop()
        self.database.dispose()


def build_pipeline(settings: PipelineSettings,
                   database: Optional[Database] = None,
                   redis_client: Optional[redis.Redis] = None,
                   source: Optional[MarketDataSource] = None) -> Pipeline:
    """설정으로 모든 구성요소를 만들고 의존성을 주입합니다."""
    database = database or Database(settings.database_url)
    cache = RedisCacheTier(redis_client or create_redis_client(settings.redis_url))
    source = source or build_market_data_source(settings)

    repository = SQLMarketDataRepository(database)
    universe = SQLSymbolUniverseRepository(database)
    historical_engine = HistoricalIngestionEngine(
        source=source,
        repository=repository,
        cache=cache,
        batch_size=settings.batch_size,
        batch_delay_seconds=settings.batch_delay_seconds,
        max_lookback_years=settings.max_lookback_years,
        timezone_name=settings.timezone,
    )
    realtime_updater = RealtimeUpdater(source, repository, cache, timezone_name=settings.timezone)
    scheduler = MarketDataScheduler(historical_engine, realtime_updater, universe, settings)

    return Pipeline(
        settings=settings,
        database=database,
        source=source,
        cache=cache,
        repository=repository,
        universe=universe,
        historical_engine=historical_engine,
        realtime_updater=realtime_updater,
        market_view=MarketViewService(repository, cache, timezone_name=settings.timezone),
        scheduler=scheduler,
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Market data ingestion & synchronization pipeline.")
    parser.add_argument(
        "--trigger",
        choices=[job_type.value for job_type in JobType],
        help="Run a single job immediately and exit.",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create database tables and exit.",
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = load_settings(args.env_file)
    setup_logging(settings.log_level, settings.log_file)

    logger.info("========================================")
    logger.info("  Starting Market Data Pipeline")
    logger.info("========================================")

    pipeline = build_pipeline(settings)

    # 1. 데이터베이스 테이블 확인 및 생성
    logger.info("Step 1: Initializing database...")
    pipeline.database.create_all()
    if args.init_db:
        return 0

    # 2. 수동 실행
    if args.trigger:
        logger.info(f"Step 2: Running '{args.trigger}' once...")
        run = pipeline.scheduler.trigger(args.trigger)
        pipeline.database.dispose()
        if run is None or run.failed:
            return 1
        return 0

    # 3. 스케줄러 설정 및 시작
    logger.info("Step 2: Setting up and starting the scheduler...")
    pipeline.scheduler.start()
    logger.info("Scheduler started. Press Ctrl+C to exit.")
    try:
        while True:
            time.sleep(2)
    except (KeyboardInterrupt, SystemExit):
        pipeline.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
