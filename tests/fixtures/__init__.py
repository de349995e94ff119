"""Mocked Service Management API responses for tests."""
