"""
Test suite for the course platform API.

Unit tests cover pure modules, service tests use Mock repositories and
integration tests drive the HTTP API through TestClient.
"""
