from datetime import time

import pytest

from src.timeclock_sync.timeclock_sync.core.enums import CutoffSource
from src.timeclock_sync.timeclock_sync.core.exceptions import ValidationError
from src.timeclock_sync.timeclock_sync.settings.service import SettingsService


@pytest.fixture
def service(settings_repo, clock):
    return SettingsService(settings_repo, clock=clock)


def test_defaults_without_stored_row(service):
    settings = service.get_settings()

    assert not settings.use_custom_cutoff
    assert settings.cutoff_time == time(9, 0)
    assert service.get_cutoff_policy().source == CutoffSource.DEFAULT


def test_enable_custom_cutoff(service, settings_repo, fixed_now):
    updated = service.update_cutoff(use_custom_cutoff=True, cutoff_time="8:30", updated_by="hr-admin")

    assert settings_repo.settings == updated
    assert updated.cutoff_time == time(8, 30)
    assert updated.updated_by == "hr-admin"
    assert updated.updated_at == fixed_now
    policy = service.get_cutoff_policy()
    assert policy.source == CutoffSource.CUSTOM
    assert policy.cutoff_time == time(8, 30)


def test_disabling_keeps_stored_time(service):
    service.update_cutoff(use_custom_cutoff=True, cutoff_time="08:30")

    updated = service.update_cutoff(use_custom_cutoff=False)

    assert updated.cutoff_time == time(8, 30)
    assert service.get_cutoff_policy().cutoff_time == time(9, 0)


def test_custom_cutoff_requires_time(service):
    with pytest.raises(ValidationError):
        service.update_cutoff(use_custom_cutoff=True)


@pytest.mark.parametrize("value", ["24:00", "9", "09:60", "nine"])
def test_invalid_cutoff_time(service, value):
    with pytest.raises(ValidationError):
        service.update_cutoff(use_custom_cutoff=True, cutoff_time=value)


def test_device_work_time_is_used_and_cleared(service):
    service.record_device_work_time("07:45")

    assert service.get_cutoff_policy().source == CutoffSource.DEVICE_REPORTED
    assert service.get_cutoff_policy().cutoff_time == time(7, 45)

    service.record_device_work_time(None)

    assert service.get_cutoff_policy().source == CutoffSource.DEFAULT
