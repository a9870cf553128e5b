"""Pure computation over buffered prices, cost basis, and thresholds.

Re-exports all public names so consumers can import directly:
    from Price_Pulse.analysis import SampleBuffer, compute_snapshot
"""

from Price_Pulse.analysis.alerts import AlertEvaluator, AlertState
from Price_Pulse.analysis.metrics import compute_snapshot, price_direction, target_distances
from Price_Pulse.analysis.position import compute_position, normalize_lots
from Price_Pulse.analysis.sample_buffer import SampleBuffer

__all__ = [
    # Buffer
    "SampleBuffer",
    # Position
    "compute_position",
    "normalize_lots",
    # Metrics
    "compute_snapshot",
    "price_direction",
    "target_distances",
    # Alerts
    "AlertEvaluator",
    "AlertState",
]
