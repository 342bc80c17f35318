from typing import Optional

from domain.market_data.config.settings import COINGECKO_IDS, NON_CRYPTO_MARKERS


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def is_crypto_symbol(symbol: str) -> bool:
    """
    'X:BTCUSD' 형태의 암호화폐 심볼인지 판별합니다.
    X: 접두사를 쓰는 금/은/원유/가스 같은 원자재는 제외합니다.
    """
    if not symbol:
        return False
    symbol = normalize_symbol(symbol)
    if not (symbol.startswith("X:") and symbol.endswith("USD")):
        return False
    return not any(marker in symbol for marker in NON_CRYPTO_MARKERS)


def is_index_symbol(symbol: str) -> bool:
    return normalize_symbol(symbol).startswith("^")


def get_coingecko_id(symbol: str) -> Optional[str]:
    """매핑이 없으면 None 을 반환합니다. 추측으로 ID 를 만들지 않습니다."""
    return COINGECKO_IDS.get(normalize_symbol(symbol))


def to_polygon_ticker(symbol: str) -> str:
    """'^GSPC' 같은 지수 심볼은 Polygon 의 'I:' 접두사로 변환합니다."""
    symbol = normalize_symbol(symbol)
    if symbol.startswith("^"):
        return "I:" + symbol[1:]
    return symbol


def to_yahoo_ticker(symbol: str) -> str:
    """'X:BTCUSD' -> 'BTC-USD'. 그 외 심볼은 그대로 사용합니다."""
    symbol = normalize_symbol(symbol)
    if symbol.startswith("X:") and symbol.endswith("USD") and len(symbol) > 5:
        return f"{symbol[2:-3]}-USD"
    return symbol
