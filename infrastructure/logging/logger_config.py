import logging
import logging.handlers
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# 스케줄러 실행 로그와 HTTP 연결 로그가 너무 많아 WARNING 이상만 남깁니다.
NOISY_LOGGERS = [
    'apscheduler.executors.default',
    'apscheduler.scheduler',
    'urllib3',
    'yfinance',
    'peewee',
]


def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None):
    """
    애플리케이션 전반에 걸쳐 사용할 표준 로깅을 설정합니다.
    - 레벨: INFO (LOG_LEVEL 로 변경 가능)
    - 포맷: %(asctime)s - %(name)s - %(levelname)s - %(message)s
    - 핸들러: 콘솔 출력 (StreamHandler), log_file 이 주어지면 RotatingFileHandler 추가
    """
    # 루트 로거의 핸들러를 모두 제거하여 중복 로깅을 방지합니다.
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5, encoding='utf-8'
        ))

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=handlers,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info("Standard logging configured.")


def get_logger(name: str) -> logging.Logger:
    """지정된 이름으로 로거 인스턴스를 가져옵니다."""
    return logging.getLogger(name)
