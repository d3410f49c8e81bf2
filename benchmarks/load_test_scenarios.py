"""
Load testing scenarios menggunakan Locust.

Cara menjalankan:
  python -m zklock --backend zookeeper --port 5001
  locust -f benchmarks/load_test_scenarios.py --host=http://localhost:5001
"""

from locust import HttpUser, task, between, events
import random
import time


class WriterUser(HttpUser):
    """
    Simulate writer yang berebut write locks.
    """
    wait_time = between(0.5, 2.0)  # Wait 0.5-2 seconds antara tasks

    def on_start(self):
        """Called saat user start"""
        self.resources = [f"resource_{i}" for i in range(10)]

    @task(3)
    def acquire_write_lock(self):
        """Acquire write lock, hold sebentar, lalu release"""
        resource = random.choice(self.resources)

        with self.client.post(
            "/api/lock/acquire",
            json={'key': resource, 'mode': 'write', 'timeout': 1},
            catch_response=True
        ) as response:
            if response.status_code == 200:
                data = response.json()
                if data['status'] == 'acquired':
                    response.success()
                    # Hold lock for a bit
                    time.sleep(random.uniform(0.1, 0.5))
                    self.release_lock(data['handle'])
                else:
                    response.failure(f"Lock not acquired: {data['reason']}")
            else:
                response.failure(f"HTTP {response.status_code}")

    @task(1)
    def acquire_exclusive_lock_nowait(self):
        """Try exclusive lock tanpa menunggu"""
        resource = random.choice(self.resources)

        with self.client.post(
            "/api/lock/acquire",
            json={'key': resource, 'mode': 'exclusive', 'timeout': 0},
            catch_response=True
        ) as response:
            if response.status_code == 200:
                data = response.json()
                # Denied karena contention bukan error
                response.success()
                if data['status'] == 'acquired':
                    self.release_lock(data['handle'])
            else:
                response.failure(f"HTTP {response.status_code}")

    def release_lock(self, handle):
        """Release lock"""
        self.client.post("/api/lock/release", json={'handle': handle})


class ReaderUser(HttpUser):
    """
    Simulate reader yang memakai read locks.
    """
    wait_time = between(0.2, 1.0)

    def on_start(self):
        self.resources = [f"resource_{i}" for i in range(10)]

    @task(5)
    def acquire_read_lock(self):
        """Acquire read lock"""
        resource = random.choice(self.resources)

        with self.client.post(
            "/api/lock/acquire",
            json={'key': resource, 'mode': 'read', 'timeout': 1},
            catch_response=True
        ) as response:
            if response.status_code == 200:
                data = response.json()
                response.success()
                if data['status'] == 'acquired':
                    time.sleep(random.uniform(0.1, 0.3))
                    self.client.post("/api/lock/release", json={'handle': data['handle']})
            else:
                response.failure(f"HTTP {response.status_code}")

    @task(1)
    def check_status(self):
        """Check lock status"""
        resource = random.choice(self.resources)
        self.client.get("/api/lock/status", params={'key': resource, 'mode': 'read'})


# Event handlers untuk custom metrics
@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("Load test starting...")


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    print("Load test complete!")
    print(f"Total requests: {environment.stats.total.num_requests}")
    print(f"Failure rate: {environment.stats.total.fail_ratio:.2%}")
