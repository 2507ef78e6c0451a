"""End-to-end scenario tests for the debounce guard.

Each scenario drives a FastAPI application through the decorator or the
route-table middleware and checks one aspect of duplicate suppression.
"""
