"""
Pytest Configuration and Fixtures

Shared fixtures: an in-memory vault gateway, a dict-backed Mongo collection
and a few stored secrets used across the test modules.
"""

import copy
from typing import Any, Dict, List, Optional, Set

import pytest

from vaultdesk.domain.errors import VaultGatewayError
from vaultdesk.domain.models import (
    ClearResult, ExecuteResult, RejectResult, RoleInfo, SaveResult,
    StoredRequest, StoredSecretValue
)
from vaultdesk.domain.record_templates import get_record_template


# =============================================================================
# Test doubles
# =============================================================================

class FakeVaultGateway:
    """In-memory gateway recording every call the session makes"""

    def __init__(self, is_administrator: bool = False):
        self.role = RoleInfo(is_administrator=is_administrator, display_name="Tester")
        self.role_error: Optional[Exception] = None
        self.stored_error: Optional[Exception] = None
        self.secrets: Dict[str, StoredSecretValue] = {}
        self.addresses: Dict[str, StoredSecretValue] = {}
        self.stored: Dict[str, StoredRequest] = {}
        self.schema_error: Optional[Exception] = None
        self.execute_error: Optional[Exception] = None
        self.failing_record_types: Set[str] = set()
        self.execute_calls: List[Dict[str, Any]] = []
        self.save_calls: List[StoredRequest] = []
        self.reject_calls: List[Dict[str, str]] = []
        self.clear_calls: List[str] = []
        self.resolve_calls: List[str] = []
        self.calls: List[str] = []
        self._created = 0

    async def fetch_schema(self, record_type):
        self.calls.append("fetch_schema")
        if self.schema_error is not None:
            raise self.schema_error
        return get_record_template(record_type)

    async def fetch_secret_details(self, entity_id):
        self.calls.append("fetch_secret_details")
        secret = self.secrets.get(entity_id)
        return secret.model_copy(deep=True) if secret else None

    async def fetch_role(self, ticket_id):
        self.calls.append("fetch_role")
        if self.role_error is not None:
            raise self.role_error
        return self.role

    async def fetch_stored_request(self, ticket_id):
        self.calls.append("fetch_stored_request")
        if self.stored_error is not None:
            raise self.stored_error
        stored = self.stored.get(ticket_id)
        return stored.model_copy(deep=True) if stored else None

    async def save_stored_request(self, ticket_id, request):
        self.calls.append("save_stored_request")
        self.save_calls.append(request)
        self.stored[ticket_id] = request.model_copy(deep=True)
        return SaveResult(success=True, assigned_reviewer="admin@example.com", message="Saved")

    async def clear_stored_request(self, ticket_id):
        self.calls.append("clear_stored_request")
        self.clear_calls.append(ticket_id)
        self.stored.pop(ticket_id, None)
        return ClearResult(success=True, message="Cleared")

    async def execute(self, ticket_id, action, payload):
        self.calls.append("execute")
        if self.execute_error is not None:
            raise self.execute_error
        self.execute_calls.append({"action": action, "payload": copy.deepcopy(payload)})
        if payload.get("recordType") in self.failing_record_types:
            return ExecuteResult(success=False, message="Vault rejected the change")
        self._created += 1
        return ExecuteResult(success=True, message="Done", created_entity_id=f"NEW{self._created}")

    async def reject(self, ticket_id, reason):
        self.calls.append("reject")
        self.reject_calls.append({"ticket_id": ticket_id, "reason": reason})
        return RejectResult(success=True, message="Rejected")

    async def resolve_reference(self, entity_id):
        self.resolve_calls.append(entity_id)
        if entity_id.startswith("BROKEN"):
            raise VaultGatewayError("lookup failed", status_code=502)
        return self.addresses.get(entity_id)


class FakeCollection:
    """Just enough of a pymongo collection for the stored request repository"""

    def __init__(self):
        self.docs: List[Dict[str, Any]] = []
        self.indexes: List[Any] = []

    def create_index(self, keys, **kwargs):
        self.indexes.append(keys)
        return keys

    def _match(self, doc, query):
        return all(doc.get(key) == value for key, value in query.items())

    def find_one(self, query):
        for doc in self.docs:
            if self._match(doc, query):
                return {"_id": "oid", **copy.deepcopy(doc)}
        return None

    def replace_one(self, query, replacement, upsert=False):
        for index, doc in enumerate(self.docs):
            if self._match(doc, query):
                self.docs[index] = copy.deepcopy(replacement)
                return
        if upsert:
            self.docs.append(copy.deepcopy(replacement))

    def count_documents(self, query, limit=0):
        count = sum(1 for doc in self.docs if self._match(doc, query))
        return min(count, limit) if limit else count

    def delete_one(self, query):
        class _Result:
            deleted_count = 0

        result = _Result()
        for index, doc in enumerate(self.docs):
            if self._match(doc, query):
                del self.docs[index]
                result.deleted_count = 1
                break
        return result


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def gateway():
    return FakeVaultGateway()


@pytest.fixture
def admin_gateway():
    return FakeVaultGateway(is_administrator=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_collection():
    return FakeCollection()


@pytest.fixture
def login_secret():
    return StoredSecretValue.model_validate({
        "uid": "REC1",
        "title": "Build server",
        "type": "login",
        "fields": [
            {"type": "login", "value": ["ci-bot"]},
            {"type": "password", "value": ["S3cret!"]},
            {"type": "url", "value": ["https://ci.example.com"]},
        ],
        "notes": "Rotated quarterly",
    })


@pytest.fixture
def contact_secret():
    return StoredSecretValue.model_validate({
        "uid": "REC2",
        "title": "Jane",
        "type": "contact",
        "fields": [
            {"type": "name", "value": [{"first": "Jane", "last": "Doe"}]},
            {"type": "phone", "value": [{"number": "555-0100", "type": "Work"}]},
            {"type": "phone", "value": [{"number": "555-0199", "type": "Mobile"}]},
            {"type": "email", "value": ["jane@example.com"]},
            {"type": "addressRef", "value": ["ADDR1"]},
        ],
    })


@pytest.fixture
def home_address():
    return StoredSecretValue.model_validate({
        "uid": "ADDR1",
        "title": "Home",
        "type": "address",
        "fields": [
            {"type": "address", "value": [{
                "street1": "1 Main St", "street2": "Apt 2", "city": "Springfield",
                "state": "IL", "zip": "62701", "country": "US"
            }]},
        ],
    })
