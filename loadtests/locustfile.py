"""Storefront load testing: Locust entry point.

Seed the menu first so the scenarios have products and coupons to use:

    PROTEAN_ENV=production python src/manage.py seed-demo

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Customers only, headless:
    locust -f loadtests/locustfile.py CustomerUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

import requests
from locust import events

from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.checkout import CustomerUser, StorePanelUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request."""
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    try:
        health = requests.get(f"{environment.host}/health", timeout=5).json()
        print(f"[LOADTEST] Domain: {health.get('domain')}")
    except requests.RequestException as exc:
        print(f"[LOADTEST] Health check failed: {exc}")
    print()


@events.test_stop.add_listener
def on_test_stop(**_kwargs):
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}\n")
