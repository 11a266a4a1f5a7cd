"""Metrics service for tracking API performance.

Singleton service to track prediction calls, their latency, and training runs.
"""

import threading
from typing import Dict, Optional


class MetricsService:
    """Singleton service for tracking API metrics.

    Thread-safe counters for prediction latency and model training runs.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize metrics counters."""
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._reset_counters()
        self._initialized = True

    def _reset_counters(self) -> None:
        self._prediction_count = 0
        self._missing_key_count = 0
        self._total_latency_ms = 0.0
        self._max_latency_ms = 0.0
        self._training_runs = 0
        self._last_training_ms: Optional[float] = None
        self._last_training_rmse: Optional[float] = None

    def record_prediction(self, latency_ms: float, found: bool = True) -> None:
        """Record a prediction call with its latency.

        Args:
            latency_ms: Latency in milliseconds
            found: False when the user or item was unknown
        """
        with self._lock:
            self._prediction_count += 1
            if not found:
                self._missing_key_count += 1
            self._total_latency_ms += latency_ms
            self._max_latency_ms = max(self._max_latency_ms, latency_ms)

    def record_training(self, duration_ms: float, final_rmse: Optional[float]) -> None:
        """Record a completed training run."""
        with self._lock:
            self._training_runs += 1
            self._last_training_ms = duration_ms
            self._last_training_rmse = final_rmse

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with prediction counts and latency, and the number and
            outcome of training runs.
        """
        with self._lock:
            avg_latency = (
                self._total_latency_ms / self._prediction_count
                if self._prediction_count > 0
                else 0.0
            )

            return {
                "prediction_count": self._prediction_count,
                "missing_key_count": self._missing_key_count,
                "average_latency_ms": round(avg_latency, 2),
                "max_latency_ms": round(self._max_latency_ms, 2),
                "training_runs": self._training_runs,
                "last_training_ms": self._last_training_ms,
                "last_training_rmse": self._last_training_rmse,
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._reset_counters()


# Global singleton instance
metrics_service = MetricsService()
