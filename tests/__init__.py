"""Test suite for Market CLI.

Hermetic tests following the pytest framework, laid out to mirror the
market_cli package.

Testing Philosophy:
    - Use pytest-mock and httpx.MockTransport for network isolation
    - Focus coverage on payload normalization and aggregation ordering
    - Avoid external dependencies - all I/O should be mocked
"""
