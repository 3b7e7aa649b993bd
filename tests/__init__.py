"""
Marketplace Trust & Safety Test Suite
=====================================

Layout:
- tests/unit/                    - Shared library and script tests
- tests/services/trust_safety/   - Service, scoring and API tests

All tests run against the in-memory document store; no MongoDB needed.

Run tests:
    pytest                                  # Everything
    pytest tests/unit                       # Shared library only
    pytest tests/services/trust_safety -k warning
    pytest --cov=services --cov=shared      # With coverage
"""
