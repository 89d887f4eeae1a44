"""
Test Suite

Tests for the Vault Request Desk backend. Everything runs in memory: the
vault gateway, MongoDB collection and clock are replaced by the doubles in
conftest.py.

Structure:
    tests/
    ├── conftest.py                       # Test doubles and fixtures
    ├── test_composites.py ...            # Engine tests
    ├── test_request_session.py           # Edit session orchestration
    ├── test_stored_request_service.py    # Repository and service
    └── test_api.py                       # API endpoints

To run tests:
    pytest backend/tests/
"""
