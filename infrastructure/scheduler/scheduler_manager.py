import threading
from enum import Enum
from typing import Callable, Dict, Optional, Union

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from common.config.settings import PipelineSettings
from domain.market_data.config.settings import OHLCV_COLLECTION
from domain.market_data.models.job_run import JobRun, JobType
from domain.market_data.repository.symbol_universe_repository import SymbolUniverseRepository
from domain.market_data.service.historical_ingestion_service import HistoricalIngestionEngine
from domain.market_data.service.realtime_update_service import RealtimeUpdater
from infrastructure.logging import get_logger
from infrastructure.scheduler import settings

logger = get_logger(__name__)


class SchedulerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


def print_scheduled_jobs(scheduler):
    """예약된 모든 작업의 목록과 다음 실행 시간을 출력합니다."""
    logger.info("--- Scheduled Jobs Summary ---")
    for job in scheduler.get_jobs():
        next_run_time = getattr(job, 'next_run_time', None)
        next_run = next_run_time.strftime('%Y-%m-%d %H:%M:%S %Z') if next_run_time else 'N/A'
        logger.info(f"-> Job: '{job.name}' | Trigger: {str(job.trigger)} | Next Run: {next_run}")
    logger.info("----------------------------")


class MarketDataScheduler:
    """
    시장 데이터 작업의 실행 시점을 관리합니다.

    - 같은 작업 종류는 동시에 하나만 실행됩니다. 실행 중 들어온 트리거는 대기열에 쌓지 않고 건너뜁니다.
    - 심볼 집합은 매 실행 직전에 새로 조회합니다.
    - trigger() 는 예약 실행과 같은 경로로 작업을 수동 실행합니다.
    """

    def __init__(self, historical_engine: HistoricalIngestionEngine,
                 realtime_updater: RealtimeUpdater,
                 universe_repository: SymbolUniverseRepository,
                 pipeline_settings: Optional[PipelineSettings] = None,
                 scheduler_factory: Optional[Callable[..., BackgroundScheduler]] = None):
        self.historical_engine = historical_engine
        self.realtime_updater = realtime_updater
        self.universe_repository = universe_repository
        self.pipeline_settings = pipeline_settings or PipelineSettings()
        self._scheduler_factory = scheduler_factory or BackgroundScheduler
        self._scheduler = None
        self._state_lock = threading.Lock()
        self._job_locks: Dict[JobType, threading.Lock] = {job_type: threading.Lock() for job_type in JobType}
        self._last_runs: Dict[JobType, JobRun] = {}
        self.state = SchedulerState.STOPPED

    # ------------------------------------------------------------------
    # 상태 전이
    # ------------------------------------------------------------------
    def _build_trigger(self, job_config: Dict, tz) -> CronTrigger:
        expression = self.pipeline_settings.cron_overrides.get(job_config['job_type'])
        if expression:
            logger.info(f"Using cron override for {job_config['job_type']}: '{expression}'")
            return CronTrigger.from_crontab(expression, timezone=tz)
        return CronTrigger(timezone=tz, **job_config['cron'])

    def start(self) -> None:
        """Stopped -> Running. 모든 작업 타이머를 등록합니다."""
        with self._state_lock:
            if self.state == SchedulerState.RUNNING:
                logger.warning("Scheduler is already running.")
                return

            tz = pytz.timezone(self.pipeline_settings.timezone or settings.TIMEZONE)
            scheduler = self._scheduler_factory(timezone=tz)
            for job_config in settings.ALL_JOBS:
                scheduler.add_job(
                    self.trigger,
                    trigger=self._build_trigger(job_config, tz),
                    args=[job_config['job_type']],
                    id=job_config['id'],
                    name=job_config['name'],
                    max_instances=1,
                    coalesce=True,
                    replace_existing=True,
                )
            scheduler.start()
            self._scheduler = scheduler
            self.state = SchedulerState.RUNNING

        print_scheduled_jobs(scheduler)
        logger.info("Market data scheduler started.")

    def stop(self) -> None:
        """Running -> Stopped. 이후 트리거만 취소하며, 실행 중인 작업은 끝까지 진행됩니다."""
        with self._state_lock:
            if self.state == SchedulerState.STOPPED:
                return
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self.state = SchedulerState.STOPPED
        logger.info("Market data scheduler shut down successfully.")

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    # ------------------------------------------------------------------
    # 작업 실행
    # ------------------------------------------------------------------
    def trigger(self, job_type: Union[JobType, str]) -> Optional[JobRun]:
        """
        작업을 즉시 실행합니다. 같은 종류의 작업이 실행 중이면 건너뛰고 None 을 반환합니다.
        알 수 없는 작업 종류는 ValueError 를 발생시킵니다.
        """
        job_type = JobType.parse(job_type)
        lock = self._job_locks[job_type]
        if not lock.acquire(blocking=False):
            logger.warning(f"Job '{job_type.value}' is already running. Skipping this trigger.")
            return None
        try:
            return self._run(job_type)
        finally:
            lock.release()

    def _run(self, job_type: JobType) -> JobRun:
        run = JobRun(job_type=job_type)
        logger.info(f"JOB START: {job_type.value}")
        try:
            if job_type in (JobType.DAILY_HISTORICAL, JobType.FULL_HISTORICAL):
                symbols = self.universe_repository.get_all_symbols()
                run.symbols_planned = len(symbols)
                range_key = "DAILY_JOB_RANGE" if job_type == JobType.DAILY_HISTORICAL else "FULL_JOB_RANGE"
                summary = self.historical_engine.run(symbols, OHLCV_COLLECTION["HISTORICAL"][range_key])
            else:
                symbols = self.universe_repository.get_active_symbols(self.pipeline_settings.active_symbol_limit)
                run.symbols_planned = len(symbols)
                if job_type == JobType.HOURLY:
                    summary = self.realtime_updater.refresh_intraday(symbols)
                else:
                    summary = self.realtime_updater.refresh_latest_prices(symbols)
            run.complete(summary)
            logger.info(f"JOB END: {run}")
        except Exception as e:
            # 타이머 스레드가 죽지 않도록 모든 예외를 여기서 처리합니다.
            run.abort()
            logger.error(f"JOB FAILED: {job_type.value}: {e}", exc_info=True)

        self._last_runs[job_type] = run
        return run

    def last_run(self, job_type: Union[JobType, str]) -> Optional[JobRun]:
        return self._last_runs.get(JobType.parse(job_type))
