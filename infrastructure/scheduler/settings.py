"""
APScheduler 작업의 모든 설정을 중앙에서 관리합니다.
Cron 표현식, 작업 ID, 이름 등을 이곳에서 정의합니다.
환경변수(*_CRON)로 crontab 문자열을 주면 아래 기본값 대신 사용합니다.
"""

# --- 타임존 설정 ---
TIMEZONE = 'America/New_York'

# --- 작업별 설정 ---

# 1. 장 마감 후 일봉 백필 (최근 1년)
DAILY_HISTORICAL_JOB = {
    'id': 'daily_historical_job',
    'name': 'Daily Historical Backfill (1Y)',
    'job_type': 'daily-historical',
    'cron': {
        'day_of_week': 'mon-fri',  # 월-금 (장날만)
        'hour': 16,                # 오후 4시 30분 (장 마감 후)
        'minute': 30
    }
}

# 2. 주간 전체 백필 (MAX)
FULL_HISTORICAL_JOB = {
    'id': 'full_historical_job',
    'name': 'Weekly Full Historical Backfill (MAX)',
    'job_type': 'full-historical',
    'cron': {
        'day_of_week': 'sun',
        'hour': 2,
        'minute': 0
    }
}

# 3. 장중 시간봉 갱신
HOURLY_JOB = {
    'id': 'hourly_refresh_job',
    'name': 'Intraday Hourly Bars Refresh',
    'job_type': 'hourly',
    'cron': {
        'day_of_week': 'mon-fri',
        'hour': '9-16',            # 9시-16시 (장 시간)
        'minute': '*/10'           # 10분마다
    }
}

# 4. 장중 최신가 갱신
LATEST_PRICE_JOB = {
    'id': 'latest_price_job',
    'name': 'Latest Price Refresh',
    'job_type': 'latest-price',
    'cron': {
        'day_of_week': 'mon-fri',
        'hour': '9-16',
        'minute': '*'              # 매분
    }
}

ALL_JOBS = [DAILY_HISTORICAL_JOB, FULL_HISTORICAL_JOB, HOURLY_JOB, LATEST_PRICE_JOB]
