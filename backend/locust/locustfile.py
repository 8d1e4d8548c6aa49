"""
Locust Load Test Suite

Seed first (prints the LOAD_* variables this file reads):
  python -m service_booking.seed --customers 200

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double-booking
  locust -f locustfile.py --tags throughput   # Test schedule reads
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from datetime import datetime, timedelta, timezone

from locust import HttpUser, between, events, tag, task

PROVIDER_ID = int(os.environ.get("LOAD_PROVIDER_ID", "1"))
SERVICE_ID = int(os.environ.get("LOAD_SERVICE_ID", "1"))
CUSTOMER_IDS = [int(c) for c in os.environ.get("LOAD_CUSTOMER_IDS", "2").split(",") if c]

# Contended slots all start from the same day
BASE_DAY = (datetime.now(timezone.utc) + timedelta(days=30)).replace(hour=0, minute=0, second=0, microsecond=0)


def window(slot: int, minutes: int = 60) -> dict:
    start = BASE_DAY + timedelta(minutes=30 * slot)
    return {
        "scheduled_start": start.isoformat(),
        "scheduled_end": (start + timedelta(minutes=minutes)).isoformat(),
    }


def booking_body(customer_id: int, slot: int) -> dict:
    return {
        "customer_id": customer_id,
        "provider_id": PROVIDER_ID,
        "service_id": SERVICE_ID,
        **window(slot),
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Provider {PROVIDER_ID}, service {SERVICE_ID}, {len(CUSTOMER_IDS)} customers")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many customers, few overlapping slots

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify no two active bookings overlap:
      SELECT a.id, b.id FROM bookings a JOIN bookings b
        ON a.provider_id = b.provider_id AND a.id < b.id
       AND a.scheduled_start < b.scheduled_end AND b.scheduled_start < a.scheduled_end
       WHERE a.status IN ('pending', 'confirmed') AND b.status IN ('pending', 'confirmed');
    Should return no rows
    """

    wait_time = between(0, 0.1)

    def on_start(self):
        self.customer_id = random.choice(CUSTOMER_IDS)
        self.headers = {"X-Actor-Id": str(self.customer_id)}

    @tag("concurrency")
    @task
    def book_contended_slot(self):
        """Windows every 30 minutes, one hour long: neighbours always collide."""
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_body(self.customer_id, random.randint(0, 20)),
            headers=self.headers,
            name="/api/v1/bookings/ [contended]",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: slot taken
            elif resp.status_code == 503:
                resp.success()  # lock wait timed out, client may retry
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - schedule and review reads under write load

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """

    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def provider_schedule(self):
        self.client.get(
            f"/api/v1/providers/{PROVIDER_ID}/schedule",
            name="/api/v1/providers/{id}/schedule",
        )

    @tag("throughput", "read")
    @task(3)
    def rating_summary(self):
        self.client.get(
            f"/api/v1/providers/{PROVIDER_ID}/reviews/summary",
            name="/api/v1/providers/{id}/reviews/summary",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """

    wait_time = between(0.5, 1.5)

    def expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_provider(self):
        body = dict(booking_body(CUSTOMER_IDS[0], 100), provider_id=999999)
        with self.client.post("/api/v1/bookings/", json=body, catch_response=True) as resp:
            self.expect(resp, (404,))

    @tag("edge")
    @task
    def inverted_window(self):
        body = booking_body(CUSTOMER_IDS[0], 100)
        body["scheduled_start"], body["scheduled_end"] = body["scheduled_end"], body["scheduled_start"]
        with self.client.post("/api/v1/bookings/", json=body, catch_response=True) as resp:
            self.expect(resp, (422,))

    @tag("edge")
    @task
    def provider_as_customer(self):
        body = booking_body(PROVIDER_ID, 100)
        with self.client.post("/api/v1/bookings/", json=body, catch_response=True) as resp:
            self.expect(resp, (422,))

    @tag("edge")
    @task
    def illegal_transition(self):
        with self.client.post(
            "/api/v1/bookings/999999/transitions",
            json={"target_status": "completed"},
            name="/api/v1/bookings/{id}/transitions",
            catch_response=True,
        ) as resp:
            self.expect(resp, (404,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/", data="not json at all", catch_response=True) as resp:
            self.expect(resp, (400, 422))

    @tag("edge")
    @task
    def bad_actor_header(self):
        with self.client.get("/api/v1/bookings/", headers={"X-Actor-Id": "nobody"}, catch_response=True) as resp:
            self.expect(resp, (400,))
