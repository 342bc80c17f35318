"""Polygon.io client."""
from .polygon_client import PolygonClient, aggregates_to_frame

__all__ = [
    'PolygonClient',
    'aggregates_to_frame',
]
