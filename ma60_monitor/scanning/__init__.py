"""
MA60 crossing analysis.

The daemon and scheduler are imported from their modules directly
(ma60_monitor.scanning.daemon / .scheduler) to keep this package light.
"""

from ma60_monitor.scanning.analyzer import (
    CrossingKind,
    CrossingReport,
    CrossingResult,
    MA60CrossingAnalyzer,
    classify_crossing,
    format_result_line,
    moving_average,
)

__all__ = [
    'CrossingKind',
    'CrossingReport',
    'CrossingResult',
    'MA60CrossingAnalyzer',
    'classify_crossing',
    'format_result_line',
    'moving_average',
]
