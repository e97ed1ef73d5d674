"""Shared fixtures for tests."""

from __future__ import annotations

import pytest

from inbox_declutter.models import ScanConfig
from tests.helpers import FakeMailbox


@pytest.fixture
def fast_config() -> ScanConfig:
    return ScanConfig(wave_delay=0, reconcile_delay=0)


@pytest.fixture
def fake_mailbox() -> FakeMailbox:
    return FakeMailbox()
