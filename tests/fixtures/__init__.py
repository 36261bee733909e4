"""
Pytest fixtures for the HttpRelay test suite.

- http_mocking: HTTPX MockTransport scripts and response builders
"""
