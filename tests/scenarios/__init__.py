"""Conformance test scenarios for the idempotency coordinator.

This package contains end-to-end scenario tests that drive the coordinator
through the ASGI middleware of a FastAPI application. Each scenario covers
one aspect of idempotent request handling.
"""
