"""
Locust Load Test Suite for the GraphQL endpoint

Tokens are minted locally with the same SECRET_KEY the API runs with.

Run scenarios:
  locust -f locustfile.py --tags read      # Listing and nested relations
  locust -f locustfile.py --tags write     # Booking creation and acceptance
  locust -f locustfile.py --tags edge      # Bad input and missing identity
  locust -f locustfile.py                  # All tests
"""

import random
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag

from booking_api.core.security import create_access_token

# Shared state
BOOKABLE_IDS = []
BOOKING_IDS = []

BOOKABLES_QUERY = "query($page: Int) { bookables(page: $page) { id title bookable_type } }"
NESTED_QUERY = "{ facilities { id title bookings { id title items { id } } } }"
ADD_BOOKING = """
mutation($title: String!, $start: DateTime!, $end: DateTime!, $items: [Int!]!) {
  addBooking(title: $title, start_time: $start, end_time: $end, item_ids: $items) { id }
}
"""
SET_ACCEPTED = "mutation($id: Int!) { setAccepted(id: $id) { id accepted } }"


def bearer(userid: str, permissions: list) -> dict:
    token = create_access_token({"userid": userid, "permissions": permissions})
    return {"Authorization": f"Bearer {token}"}


def graphql(client, query, variables=None, headers=None, name=None):
    return client.post(
        "/graphql",
        json={"query": query, "variables": variables or {}},
        headers=headers or {},
        name=name or "/graphql",
        catch_response=True,
    )


class ReadUser(HttpUser):
    """
    TEST 1: Read throughput - pagination and batched nested relations

    Run: locust -f locustfile.py --tags read -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("read")
    @task(10)
    def list_bookables(self):
        with graphql(self.client, BOOKABLES_QUERY, {"page": random.randint(0, 3)},
                     name="bookables") as resp:
            if resp.status_code != 200 or "errors" in resp.json():
                resp.failure(f"Unexpected: {resp.status_code}")
                return
            for bookable in resp.json()["data"]["bookables"]:
                if bookable["id"] not in BOOKABLE_IDS:
                    BOOKABLE_IDS.append(bookable["id"])
            resp.success()

    @tag("read")
    @task(3)
    def nested_facilities(self):
        with graphql(self.client, NESTED_QUERY, name="facilities+bookings+items") as resp:
            if resp.status_code == 200 and "errors" not in resp.json():
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("read")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class BookingUser(HttpUser):
    """
    TEST 2: Writes - many users booking overlapping items

    Run: locust -f locustfile.py --tags write -u 50 -r 10 --run-time 60s

    Overlaps are not rejected; every well-formed booking should succeed.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = bearer(f"load-{random.randint(10000, 99999)}", ["user"])
        self.admin_headers = bearer("load-admin", ["admin"])

    @tag("write")
    @task(5)
    def add_booking(self):
        if not BOOKABLE_IDS:
            return
        start = datetime.now(timezone.utc) + timedelta(hours=random.randint(1, 500))
        variables = {
            "title": f"Load booking {random.randint(1, 10000)}",
            "start": start.isoformat(),
            "end": (start + timedelta(hours=2)).isoformat(),
            "items": random.sample(BOOKABLE_IDS, k=min(len(BOOKABLE_IDS), random.randint(1, 3))),
        }
        with graphql(self.client, ADD_BOOKING, variables, self.headers, name="addBooking") as resp:
            body = resp.json()
            if resp.status_code == 200 and body["data"]["addBooking"]:
                BOOKING_IDS.append(body["data"]["addBooking"]["id"])
                resp.success()
            else:
                resp.failure(f"Unexpected: {body.get('errors')}")

    @tag("write")
    @task(1)
    def accept_booking(self):
        if not BOOKING_IDS:
            return
        with graphql(self.client, SET_ACCEPTED, {"id": random.choice(BOOKING_IDS)},
                     self.admin_headers, name="setAccepted") as resp:
            if resp.status_code == 200 and "errors" not in resp.json():
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, every case must come back with an error code.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = bearer(f"edge-{random.randint(10000, 99999)}", ["user"])

    def expect_code(self, resp, code):
        errors = resp.json().get("errors") or []
        if errors and errors[0].get("extensions", {}).get("code") == code:
            resp.success()
        else:
            resp.failure(f"Expected {code}, got {resp.status_code}: {errors}")

    @tag("edge")
    @task
    def missing_identity(self):
        """Try booking without a token."""
        start = datetime.now(timezone.utc)
        variables = {"title": "x", "start": start.isoformat(),
                     "end": (start + timedelta(hours=1)).isoformat(), "items": [1]}
        with graphql(self.client, ADD_BOOKING, variables, name="addBooking [anonymous]") as resp:
            self.expect_code(resp, "UNAUTHENTICATED")

    @tag("edge")
    @task
    def unknown_item(self):
        start = datetime.now(timezone.utc)
        variables = {"title": "x", "start": start.isoformat(),
                     "end": (start + timedelta(hours=1)).isoformat(), "items": [999999]}
        with graphql(self.client, ADD_BOOKING, variables, self.headers,
                     name="addBooking [unknown item]") as resp:
            self.expect_code(resp, "CONSTRAINT_VIOLATION")

    @tag("edge")
    @task
    def reversed_time_range(self):
        start = datetime.now(timezone.utc)
        variables = {"title": "x", "start": start.isoformat(),
                     "end": (start - timedelta(hours=1)).isoformat(), "items": [1]}
        with graphql(self.client, ADD_BOOKING, variables, self.headers,
                     name="addBooking [reversed]") as resp:
            self.expect_code(resp, "BAD_USER_INPUT")

    @tag("edge")
    @task
    def accept_without_role(self):
        with graphql(self.client, SET_ACCEPTED, {"id": 1}, self.headers,
                     name="setAccepted [no role]") as resp:
            self.expect_code(resp, "FORBIDDEN")

    @tag("edge")
    @task
    def huge_page(self):
        with graphql(self.client, "{ bookings(maxItems: 999999) { id } }",
                     name="bookings [huge page]") as resp:
            self.expect_code(resp, "BAD_USER_INPUT")

    @tag("edge")
    @task
    def malformed_document(self):
        with graphql(self.client, "{ bookings { id ", name="[syntax error]") as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")
