"""
일봉 OHLCV 백필(Backfill) 유틸리티

지정된 기간 키에 대해 전체 또는 특정 심볼의 일봉을 수집하여 데이터베이스에 저장합니다.
이미 저장된 날짜는 덮어쓰므로 중단된 백필은 같은 명령으로 다시 실행하면 됩니다.

사용 예시:
# 등록된 모든 심볼 1년치 백필
python scripts/backfill_ohlcv.py --range 1Y

# 특정 심볼만 최대 기간 백필
python scripts/backfill_ohlcv.py --range MAX --symbols AAPL MSFT X:BTCUSD
"""
import argparse
import os
import sys
from typing import List, Optional

# 프로젝트 루트 디렉토리를 Python 경로에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from common.config.settings import PipelineSettings, load_settings
from domain.market_data.config.settings import TIME_RANGES
from infrastructure.logging import setup_logging, get_logger
from main import build_pipeline

logger = get_logger(__name__)


def backfill_ohlcv(settings: PipelineSettings, time_range: str, symbols: Optional[List[str]] = None) -> int:
    """지정된 기간의 일봉을 백필하고, 오류가 있었던 심볼 수를 반환합니다."""
    pipeline = build_pipeline(settings)
    try:
        pipeline.database.create_all()
        targets = symbols or pipeline.universe.get_all_symbols()
        if not targets:
            logger.warning("No symbols to backfill. Register assets or pass --symbols.")
            return 0

        logger.info(f"Starting OHLCV backfill ({time_range}) for {len(targets)} symbols: {symbols or 'ALL'}")
        summary = pipeline.historical_engine.run(targets, time_range)
        if summary.failed_symbols:
            logger.error(f"Backfill failed for symbols: {summary.failed_symbols}")
        else:
            logger.info("OHLCV backfill process completed successfully.")
        return summary.errors
    finally:
        pipeline.database.dispose()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Backfill daily OHLCV bars for a named time range.",
        formatter_class=argparse.RawTextHelpFormatter  # 도움말 포맷 유지
    )
    parser.add_argument(
        "--range",
        dest="time_range",
        default="1Y",
        type=str.upper,
        choices=TIME_RANGES,
        help=f"Time range to backfill. Available choices: {', '.join(TIME_RANGES)}"
    )
    parser.add_argument(
        '--symbols',
        nargs='+',  # 하나 이상의 인자를 리스트로 받음
        metavar='SYMBOL',
        help="Optional: specific symbols to backfill. Defaults to every registered asset."
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file.")
    return parser.parse_args(argv)


def main(argv=None):
    """스크립트 메인 실행 함수"""
    args = parse_args(argv)
    settings = load_settings(args.env_file)
    setup_logging(settings.log_level, settings.log_file)

    errors = backfill_ohlcv(settings, args.time_range, args.symbols)
    sys.exit(1 if errors else 0)


if __name__ == "__main__":
    main()
