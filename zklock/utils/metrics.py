"""
Metrics collector menggunakan Prometheus.
File ini mengumpulkan data lock attempts, wait time, releases
dan resource usage dari process.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest
import time
import psutil
from typing import Dict, Optional


class MetricsCollector:
    """
    Class untuk mengumpulkan metrics lock service.
    Menggunakan Prometheus format untuk monitoring.
    """

    def __init__(self):
        # Counter: jumlah lock attempts per mode dan outcome
        self.lock_attempts = Counter(
            'zklock_attempts_total',
            'Total number of lock attempts',
            ['mode', 'outcome']
        )

        # Histogram: berapa lama request menunggu sampai acquired/denied
        self.lock_wait = Histogram(
            'zklock_wait_seconds',
            'Time spent waiting for a lock in seconds',
            ['mode']
        )

        self.lock_releases = Counter(
            'zklock_releases_total',
            'Total number of unlock calls',
            ['result']
        )

        # Gauge: nilai yang bisa naik/turun
        self.locks_held = Gauge(
            'zklock_locks_held',
            'Number of locks currently held through this process'
        )
        self._held_handles: Dict[str, int] = {}

        # System metrics
        self.cpu_usage = Gauge('zklock_cpu_usage_percent', 'CPU usage percentage')
        self.memory_usage = Gauge('zklock_memory_usage_percent', 'Memory usage percentage')

    def record_attempt(self, mode: str, outcome: str, duration: float, handle: Optional[str] = None):
        """
        Record lock attempt.

        Args:
            mode: exclusive, write atau read
            outcome: acquired, timeout, coordination, path_creation
            duration: Waktu attempt dalam seconds
            handle: Handle yang di-grant, jika acquired
        """
        self.lock_attempts.labels(mode=mode, outcome=outcome).inc()
        self.lock_wait.labels(mode=mode).observe(duration)
        if handle is not None:
            self._held_handles[handle] = self._held_handles.get(handle, 0) + 1
            self.locks_held.inc()

    def record_release(self, handle: str, released: bool):
        """
        Record unlock result.
        Gauge hanya turun untuk handles yang di-acquire oleh process ini.
        """
        self.lock_releases.labels(result='released' if released else 'not_found').inc()
        count = self._held_handles.pop(handle, 0)
        if count:
            if count > 1:
                self._held_handles[handle] = count - 1
            self.locks_held.dec()

    def update_system_metrics(self):
        """Update CPU dan memory usage"""
        self.cpu_usage.set(psutil.cpu_percent())
        self.memory_usage.set(psutil.virtual_memory().percent)

    def get_metrics(self) -> bytes:
        """
        Export metrics dalam Prometheus format.
        Returns: Metrics data dalam bytes
        """
        self.update_system_metrics()
        return generate_latest()


# Context manager untuk measure execution time
class measure_time:
    """
    Context manager untuk mengukur execution time.

    Contoh penggunaan:
        with measure_time() as timer:
            await locker.acquire("orders")
        print(f"Execution time: {timer.elapsed}s")
    """

    def __init__(self):
        self.start_time = None
        self.elapsed = None

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.monotonic() - self.start_time
        return False


# Singleton instance
metrics = MetricsCollector()
