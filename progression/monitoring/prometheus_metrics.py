"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram, generate_latest

from progression.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self, enabled: bool = ENABLE_PROMETHEUS):
        if not enabled:
            logger.info("Prometheus metrics disabled")
            self._enabled = False
            return

        # Ledger metrics
        self.points_awarded_total = Counter(
            'points_awarded_total',
            'Total points credited, including bonuses',
            ['category']
        )

        self.achievements_unlocked_total = Counter(
            'achievements_unlocked_total',
            'Total achievements unlocked',
            ['achievement']
        )

        self.rewards_redeemed_total = Counter(
            'rewards_redeemed_total',
            'Total successful reward redemptions',
            ['reward_type']
        )

        self.ledger_errors_total = Counter(
            'ledger_errors_total',
            'Total failed ledger operations',
            ['operation', 'error_type']
        )

        self.ledger_operation_duration_seconds = Histogram(
            'ledger_operation_duration_seconds',
            'Ledger operation latency',
            ['operation'],
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
        )

        self._enabled = True
        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled

    def export(self) -> bytes:
        """Render all registered metrics in the Prometheus text format"""
        return generate_latest()


# Global metrics instance
metrics = PrometheusMetrics()


@contextmanager
def track_ledger_operation(operation: str):
    """Track latency and failures of a ledger operation"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()

    try:
        yield
    except Exception as e:
        metrics.ledger_errors_total.labels(
            operation=operation,
            error_type=type(e).__name__
        ).inc()
        raise
    finally:
        duration = time.time() - start_time
        metrics.ledger_operation_duration_seconds.labels(
            operation=operation
        ).observe(duration)


def record_points(category: str, amount: int) -> None:
    """Count credited points"""
    if not metrics.enabled or amount <= 0:
        return
    metrics.points_awarded_total.labels(category=category).inc(amount)


def record_achievements(achievement_ids: list[str]) -> None:
    """Count unlocked achievements"""
    if not metrics.enabled:
        return
    for achievement_id in achievement_ids:
        metrics.achievements_unlocked_total.labels(achievement=achievement_id).inc()


def record_redemption(reward_type: str) -> None:
    """Count a successful redemption"""
    if not metrics.enabled:
        return
    metrics.rewards_redeemed_total.labels(reward_type=reward_type).inc()
