"""Storefront load test scenarios.

Two journeys: a customer who builds a cart and checks out, and a store
panel operator who moves pending orders along.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import add_line_data, checkout_data, coupon_code, load_seed, user_id
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CustomerState

SEED = load_seed()


class CartToCheckoutJourney(SequentialTaskSet):
    """Add Lines -> Change Quantity -> Apply Coupon -> Redeem Points -> Pickup -> Checkout."""

    def on_start(self):
        self.state = CustomerState(user_id=user_id())
        self.headers = {"X-User-Id": self.state.user_id}

    @task
    def add_lines(self):
        for _ in range(random.randint(1, 3)):
            with self.client.post(
                "/cart/lines",
                json=add_line_data(SEED),
                headers=self.headers,
                catch_response=True,
                name="POST /cart/lines",
            ) as resp:
                if resp.status_code == 201:
                    self.state.line_ids = [line["line_id"] for line in resp.json()["lines"]]
                else:
                    resp.failure(f"Add line failed: {resp.status_code}: {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def change_quantity(self):
        line_id = random.choice(self.state.line_ids)
        with self.client.put(
            f"/cart/lines/{line_id}",
            json={"quantity": random.randint(1, 4)},
            headers=self.headers,
            catch_response=True,
            name="PUT /cart/lines/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Change quantity failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def apply_coupon(self):
        with self.client.post(
            "/cart/coupon",
            json={"code": coupon_code(SEED)},
            headers=self.headers,
            catch_response=True,
            name="POST /cart/coupon",
        ) as resp:
            if resp.status_code == 200:
                self.state.coupon_applied = resp.json()["success"]
            else:
                resp.failure(f"Apply coupon failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def redeem_points(self):
        with self.client.put(
            "/cart/points",
            json={"points": random.randint(0, 500)},
            headers=self.headers,
            catch_response=True,
            name="PUT /cart/points",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Redeem points failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def checkout(self):
        with self.client.post(
            "/checkout",
            json=checkout_data(),
            headers=self.headers,
            catch_response=True,
            name="POST /checkout",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_ids.append(resp.json()["order_id"])
            else:
                resp.failure(f"Checkout failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def track_orders(self):
        self.client.get("/orders", headers=self.headers, name="GET /orders")
        self.client.get("/points", headers=self.headers, name="GET /points")

    @task
    def done(self):
        self.interrupt()


class StorePanelJourney(SequentialTaskSet):
    """List pending orders -> accept one -> start preparing it."""

    headers = {"X-User-Id": "lt-lojista", "X-User-Role": "lojista"}

    @task
    def advance_pending_order(self):
        with self.client.get(
            "/store/orders",
            params={"status": "pending"},
            headers=self.headers,
            catch_response=True,
            name="GET /store/orders",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"List orders failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()
                return
            pending = resp.json()

        if not pending:
            self.interrupt()
            return

        order_id = random.choice(pending)["order_id"]
        for status in ("accepted", "preparing"):
            with self.client.put(
                f"/store/orders/{order_id}/status",
                json={"status": status},
                headers=self.headers,
                catch_response=True,
                name="PUT /store/orders/{id}/status",
            ) as resp:
                # Another panel user may have moved the order first
                if resp.status_code not in (200, 400):
                    resp.failure(f"Status update failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CustomerUser(HttpUser):
    tasks = [CartToCheckoutJourney]
    wait_time = between(1, 3)


class StorePanelUser(HttpUser):
    tasks = [StorePanelJourney]
    wait_time = between(2, 5)
    weight = 1
