"""
Utils package: configuration dan Prometheus metrics.
"""

from .config import Config
from .metrics import metrics, measure_time, MetricsCollector

__all__ = ['Config', 'metrics', 'measure_time', 'MetricsCollector']
