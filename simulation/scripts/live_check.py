#!/usr/bin/env python3
"""Smoke check of the Python client against a live Pterodactyl panel.

Only read-only application endpoints are used.

Usage:
    PTERO_URL=https://panel.example.com PTERO_TOKEN=ptla_... python live_check.py
"""

import logging
import os
import sys
import threading

# Add the client to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../clients/python"))

from ptero_client import Action, ClientConfig, RateLimitedError, Route, Session

USERS = Route("GET", "application/users?page={page}")
USER = Route("GET", "application/users/{id}")
NODES = Route("GET", "application/nodes?page={page}")


def main():
    logging.basicConfig(level=os.environ.get("PTERO_LOG_LEVEL", "WARNING"))
    config = ClientConfig.from_env()
    print(f"Python Client Check - connecting to {config.base_url}")
    print("=" * 60)

    session = Session(config)
    results = {"passed": 0, "failed": 0}

    def test(name: str, fn):
        try:
            fn()
            print(f"  [PASS] {name}")
            results["passed"] += 1
        except Exception as e:
            print(f"  [FAIL] {name}: {e}")
            results["failed"] += 1

    users = []

    # Check: Retrieve every page of users
    def test_retrieve_all():
        users.extend(session.paginate(USERS).retrieve_all().execute())
        assert isinstance(users, list), "Expected list of users"

    test("paginate().retrieve_all()", test_retrieve_all)

    # Check: Lazy iteration agrees with retrieve_all
    def test_iterator():
        ids = [u["attributes"]["id"] for u in session.paginate(USERS)]
        assert ids == [u["attributes"]["id"] for u in users], "Iterator order differs"

    test("paginate() iterator", test_iterator)

    # Check: Single request with map
    def test_single_user():
        if not users:
            return
        first = users[0]["attributes"]["id"]
        username = session.action(USER.compile(first)).map(
            lambda u: u["attributes"]["username"]
        ).execute()
        assert username == users[0]["attributes"]["username"], f"Unexpected user {username}"

    test("action().map()", test_single_user)

    # Check: Async execution delivers exactly once
    def test_async():
        done = threading.Event()
        outcome = {}

        def failure(error):
            outcome["error"] = error
            done.set()

        def success(value):
            outcome["value"] = value
            done.set()

        session.paginate(NODES).execute_async(success, failure)
        assert done.wait(60), "No callback within 60 seconds"
        if "error" in outcome and not isinstance(outcome["error"], RateLimitedError):
            raise outcome["error"]

    test("execute_async()", test_async)

    # Check: Missing user is recovered
    def test_recover():
        value = session.action(USER.compile(2**31 - 1)).map_error(
            lambda e: getattr(e, "status", None) == 404, lambda e: None
        ).execute()
        assert value is None, "Expected recovery to None"

    test("map_error() on 404", test_recover)

    # Check: Combining actions
    def test_on_execute():
        total = Action.on_execute(session, lambda: len(session.paginate(NODES).execute())).execute()
        assert total >= 0

    test("on_execute()", test_on_execute)

    session.close()

    # Summary
    print("=" * 60)
    total = results["passed"] + results["failed"]
    print(f"Results: {results['passed']}/{total} passed")
    print(f"Rate limit: {session.rate_limiter.snapshot()}")

    return 0 if results["failed"] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
