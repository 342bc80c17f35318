# tests/test_scheduler.py

import threading
from datetime import date
from unittest.mock import MagicMock

import pytest

from common.config.settings import PipelineSettings
from domain.market_data.models.job_run import IngestionSummary, JobType, RefreshSummary
from infrastructure.scheduler import settings as job_settings
from infrastructure.scheduler.scheduler_manager import MarketDataScheduler, SchedulerState


def _ingestion_summary(**kwargs):
    return IngestionSummary(time_range="1Y", start_date=date(2023, 5, 15), end_date=date(2024, 5, 15), **kwargs)


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.run.return_value = _ingestion_summary(processed=2, total_inserted=10)
    return engine


@pytest.fixture
def updater():
    updater = MagicMock()
    updater.refresh_intraday.return_value = RefreshSummary(job_type="hourly", processed=1, inserted=24)
    updater.refresh_latest_prices.return_value = RefreshSummary(job_type="latest-price", processed=1, cached=1)
    return updater


@pytest.fixture
def universe():
    universe = MagicMock()
    universe.get_all_symbols.return_value = ["AAPL", "MSFT"]
    universe.get_active_symbols.return_value = ["AAPL"]
    return universe


@pytest.fixture
def scheduler(engine, updater, universe):
    return MarketDataScheduler(engine, updater, universe, PipelineSettings(active_symbol_limit=25))


def test_daily_historical_uses_full_universe(scheduler, engine, universe):
    run = scheduler.trigger("daily-historical")

    engine.run.assert_called_once_with(["AAPL", "MSFT"], "1Y")
    assert run.symbols_planned == 2
    assert run.symbols_processed == 2
    assert run.records_written == 10
    assert not run.failed
    assert scheduler.last_run(JobType.DAILY_HISTORICAL) is run


def test_full_historical_uses_max_range(scheduler, engine):
    scheduler.trigger(JobType.FULL_HISTORICAL)
    assert engine.run.call_args[0][1] == "MAX"


def test_realtime_jobs_use_active_symbols(scheduler, updater, universe):
    scheduler.trigger("hourly")
    scheduler.trigger("latest-price")

    universe.get_active_symbols.assert_called_with(25)
    updater.refresh_intraday.assert_called_once_with(["AAPL"])
    updater.refresh_latest_prices.assert_called_once_with(["AAPL"])
    assert scheduler.last_run("hourly").records_written == 24


def test_unknown_job_type_is_rejected(scheduler):
    with pytest.raises(ValueError):
        scheduler.trigger("weekly-report")


def test_engine_failure_marks_run_failed(scheduler, universe):
    universe.get_all_symbols.side_effect = RuntimeError("db down")

    run = scheduler.trigger("daily-historical")

    assert run.failed
    assert run.finished_at is not None


def test_overlapping_trigger_is_skipped(scheduler, engine):
    started = threading.Event()
    release = threading.Event()

    def _slow_run(symbols, time_range):
        started.set()
        release.wait(timeout=5)
        return _ingestion_summary(processed=2)

    engine.run.side_effect = _slow_run
    worker = threading.Thread(target=scheduler.trigger, args=("daily-historical",))
    worker.start()
    try:
        assert started.wait(timeout=5)
        assert scheduler.trigger("daily-historical") is None
        # 다른 작업 종류는 영향을 받지 않습니다.
        assert scheduler.trigger("latest-price") is not None
    finally:
        release.set()
        worker.join(timeout=5)

    assert engine.run.call_count == 1
    assert scheduler.trigger("daily-historical") is not None


def test_start_registers_all_jobs_and_stop_shuts_down(engine, updater, universe):
    backend = MagicMock()
    factory = MagicMock(return_value=backend)
    scheduler = MarketDataScheduler(engine, updater, universe, PipelineSettings(), scheduler_factory=factory)

    scheduler.start()
    scheduler.start()

    assert scheduler.is_running
    assert factory.call_count == 1
    job_ids = [call.kwargs['id'] for call in backend.add_job.call_args_list]
    assert job_ids == [job['id'] for job in job_settings.ALL_JOBS]
    for call in backend.add_job.call_args_list:
        assert call.kwargs['max_instances'] == 1
        assert call.kwargs['coalesce'] is True
    backend.start.assert_called_once()

    scheduler.stop()
    scheduler.stop()

    assert scheduler.state == SchedulerState.STOPPED
    backend.shutdown.assert_called_once_with(wait=False)


def test_cron_override_replaces_default_schedule(engine, updater, universe):
    backend = MagicMock()
    pipeline_settings = PipelineSettings(cron_overrides={"hourly": "*/5 9-16 * * mon-fri"})
    scheduler = MarketDataScheduler(engine, updater, universe, pipeline_settings,
                                    scheduler_factory=MagicMock(return_value=backend))

    scheduler.start()

    triggers = {call.kwargs['id']: str(call.kwargs['trigger']) for call in backend.add_job.call_args_list}
    assert "minute='*/5'" in triggers[job_settings.HOURLY_JOB['id']]
    assert "minute='30'" in triggers[job_settings.DAILY_HISTORICAL_JOB['id']]
