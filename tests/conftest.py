# tests/conftest.py
from typing import List

import pytest

from bestbuy_tracker import config
from bestbuy_tracker.models import AvailabilityRecord

from tests.helpers import FIXTURES


@pytest.fixture
def fixtures() -> List[AvailabilityRecord]:
    return list(FIXTURES)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Tests never see a developer's .env values."""
    monkeypatch.setattr(config, "EMAIL_USER", None)
    monkeypatch.setattr(config, "EMAIL_PASS", None)
    monkeypatch.setattr(config, "EMAIL_TO", None)
    monkeypatch.setattr(config, "EMAIL_SUBJECT_PREFIX", "")
    monkeypatch.setattr(config, "TRIGGER_SECRET", None)
    monkeypatch.setattr(config, "TEST_MODE", False)
    monkeypatch.setattr(config, "SKUS", list(config.DEFAULT_SKUS))
    monkeypatch.setattr(config, "POSTAL_CODE", config.DEFAULT_POSTAL_CODE)
    monkeypatch.setattr(config, "LOCATIONS", list(config.DEFAULT_LOCATIONS))
