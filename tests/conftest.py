"""Shared fixtures for the Kuberoot test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from kuberoot.models.tenancy import LOCAL_TENANT_ID
from kuberoot.rules.table import RuleTable, default_rule_table


def make_store(durable: bool = False, tenant_id: str = LOCAL_TENANT_ID) -> MagicMock:
    """A DiagnosisStore double whose async methods record their calls."""
    store = MagicMock()
    store.durable = durable
    store.save_diagnoses = AsyncMock(return_value=None)
    store.list_diagnoses = AsyncMock(return_value=[])
    store.validate_api_key = AsyncMock(return_value=tenant_id)
    store.close = AsyncMock(return_value=None)
    return store


@pytest.fixture
def rules() -> RuleTable:
    return default_rule_table()


@pytest.fixture
def local_store() -> MagicMock:
    return make_store(durable=False)


@pytest.fixture
def durable_store() -> MagicMock:
    return make_store(durable=True, tenant_id="org-a")


@pytest.fixture
def store_factory():
    return make_store
