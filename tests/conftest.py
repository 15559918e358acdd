"""
Shared fixtures for service tests: fake collections, object storage and
the callable functions client wired into the service modules.
"""

from collections import defaultdict
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services import (
    admin_service,
    analytics_service,
    cms_service,
    kyc_wizard_service,
    support_service,
    user_service,
)
from tests.fakes import FakeCollection


PATCHED_MODULES = (
    user_service,
    admin_service,
    analytics_service,
    cms_service,
    kyc_wizard_service,
    support_service,
)


@pytest.fixture
def db(monkeypatch):
    """Collection name -> FakeCollection, wired into every service module."""
    collections = defaultdict(lambda: None)

    def get_collection(name):
        if collections[name] is None:
            collections[name] = FakeCollection(name)
        return collections[name]

    for module in PATCHED_MODULES:
        monkeypatch.setattr(module, "get_collection", get_collection)

    return SimpleNamespace(get=get_collection)


@pytest.fixture
def storage(monkeypatch):
    fake = MagicMock()
    fake.upload_bytes = AsyncMock(return_value="http://files.test/object?token=abc")

    for module in (user_service, support_service):
        monkeypatch.setattr(module, "get_storage", lambda: fake)
    return fake


@pytest.fixture
def functions(monkeypatch):
    fake = MagicMock()
    fake.call = AsyncMock(return_value={"success": True})

    for module in (user_service, admin_service):
        monkeypatch.setattr(module, "get_functions_service", lambda: fake)
    return fake
