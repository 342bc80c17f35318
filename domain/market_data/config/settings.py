from typing import Dict, List

# 과거 데이터 수집에서 지원하는 기간 키
TIME_RANGES: List[str] = ["7D", "1M", "3M", "6M", "YTD", "1Y", "3Y", "5Y", "MAX"]

# OHLCV 수집 설정
OHLCV_COLLECTION = {
    # 일봉 과거 데이터 설정
    "HISTORICAL": {
        "DAILY_JOB_RANGE": "1Y",     # 장 마감 후 일일 백필 기간
        "FULL_JOB_RANGE": "MAX",     # 주간 전체 백필 기간
        "MAX_LOOKBACK_YEARS": 10,    # MAX 기간의 상한
    },
    # 시간봉 데이터 설정
    "INTRADAY": {
        "CRYPTO_SPOT_BAND": 0.01,    # 현물가만 주는 Provider 의 고가/저가 밴드 (±1%)
    },
    # 저장소 쓰기 설정
    "STORE": {
        "DAILY_BATCH_SIZE": 100,     # 일봉 upsert 1회당 행 수
        "INTRADAY_BATCH_SIZE": 50,   # 시간봉 insert 1회당 행 수
    },
}

# Provider 별 호출 제어 설정
PROVIDERS: Dict[str, Dict] = {
    "polygon": {
        "BASE_URL": "https://api.polygon.io",
        "MIN_INTERVAL_SECONDS": 0.25,     # 요청 간 최소 간격
        "RATE_LIMIT_COOLDOWN_SECONDS": 30,  # 429 수신 시 대기 시간
        "SERVER_ERROR_COOLDOWN_SECONDS": 5,  # 5xx 수신 시 대기 시간
        "MAX_REQUEST_DAYS": 730,          # 1회 요청으로 가져올 최대 기간
    },
    "coingecko": {
        "BASE_URL": "https://api.coingecko.com/api/v3",
        "MIN_INTERVAL_SECONDS": 1.5,
        "RATE_LIMIT_COOLDOWN_SECONDS": 60,
        "SERVER_ERROR_COOLDOWN_SECONDS": 10,
        "MAX_REQUEST_DAYS": 365,
    },
    "yahoo": {
        "MIN_INTERVAL_SECONDS": 1.0,
        "RATE_LIMIT_COOLDOWN_SECONDS": 30,
        "SERVER_ERROR_COOLDOWN_SECONDS": 5,
        "MAX_REQUEST_DAYS": 3650,
    },
}

# 캐시 TTL (초)
CACHE_TTL_SECONDS = {
    "LATEST_PRICE": 60,          # 장중 시세 반영용
    "HOURLY_DATA": 2 * 60,       # 다음 실시간 주기에서 다시 생성됨
    "DAILY_DATA": 24 * 60 * 60,  # 오늘 일봉 (1D 차트용)
}

# 캐시 키 템플릿
CACHE_KEYS = {
    "LATEST_PRICE": "latest_price:{symbol}",
    "HOURLY_DATA": "hourly_data:{symbol}:{date}",
    "DAILY_DATA": "daily_data:{symbol}:{date}",
}

# 암호화폐 심볼 -> CoinGecko ID
COINGECKO_IDS: Dict[str, str] = {
    "X:BTCUSD": "bitcoin",
    "X:ETHUSD": "ethereum",
    "X:ADAUSD": "cardano",
    "X:DOTUSD": "polkadot",
    "X:LINKUSD": "chainlink",
    "X:LTCUSD": "litecoin",
    "X:XRPUSD": "ripple",
    "X:BNBUSD": "binancecoin",
    "X:SOLUSD": "solana",
    "X:DOGEUSD": "dogecoin",
}

# X: 접두사를 쓰지만 24시간 거래되는 암호화폐가 아닌 원자재 심볼 표식
NON_CRYPTO_MARKERS: List[str] = ["XAU", "XAG", "OIL", "GAS"]

# 합성 데이터 생성기 설정
SYNTHETIC_DATA = {
    "DEFAULT_BASE_PRICE": 100.00,
    "DAILY_VOLATILITY": 0.015,
    "CRYPTO_DAILY_VOLATILITY": 0.03,
    "HOURLY_VOLATILITY": 0.002,
    "CRYPTO_HOURLY_VOLATILITY": 0.005,
    "OFF_HOURS_VOLATILITY": 0.0005,
    "CRYPTO_OFF_HOURS_VOLATILITY": 0.001,
    "QUOTE_VOLATILITY": 0.01,
    "CRYPTO_QUOTE_VOLATILITY": 0.02,
    "BASE_PRICES": {
        # 기술주
        "AAPL": 175.00, "MSFT": 380.00, "GOOGL": 140.00, "AMZN": 150.00, "TSLA": 250.00,
        "META": 300.00, "NVDA": 500.00, "NFLX": 400.00, "AMD": 120.00, "INTC": 45.00,
        # 금융
        "JPM": 150.00, "BAC": 35.00, "GS": 400.00, "V": 250.00, "MA": 400.00,
        # 헬스케어 / 소비재
        "JNJ": 160.00, "PFE": 30.00, "UNH": 500.00, "WMT": 160.00, "DIS": 100.00,
        # 지수
        "^GSPC": 4500.00, "^DJI": 38000.00, "^IXIC": 14000.00, "^RUT": 2000.00,
        # ETF
        "SPY": 450.00, "QQQ": 380.00, "DIA": 380.00, "IWM": 200.00, "VTI": 240.00,
        # 원자재
        "X:XAUUSD": 2345.00, "X:XAGUSD": 28.50,
        # 암호화폐
        "X:BTCUSD": 65000.00, "X:ETHUSD": 3200.00, "X:SOLUSD": 150.00, "X:DOGEUSD": 0.15,
    },
    # 거래량 기준값
    "BASE_VOLUME": {
        "CRYPTO": 50_000_000,
        "INDEX": 80_000_000,
        "MAJOR_ETF": 60_000_000,
        "DEFAULT": 20_000_000,
    },
    "MAJOR_ETFS": ["SPY", "QQQ", "DIA", "IWM", "VTI", "VOO"],
}
