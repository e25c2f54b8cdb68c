"""Clustering engine implementations."""

from .base import MultiKMeansClusterer, RunView
from .simple import MultiKMeans
from .tracking import TrackingKMeans
from .column_tracking import ColumnTrackingKMeans

__all__ = [
    'MultiKMeansClusterer',
    'RunView',
    'MultiKMeans',
    'TrackingKMeans',
    'ColumnTrackingKMeans'
]
