import json
import logging

import pytest

from shiftmint.anomalies import DetectionOptions
from shiftmint.config import Settings
from shiftmint.logging_config import JSONFormatter, configure_logging


def test_defaults_match_demo_business():
    settings = Settings(_env_file=None)

    assert settings.default_service_charge_rate == 18
    assert settings.assumed_weekly_hours == 32
    assert settings.tax_settings().combined_tax_rate == pytest.approx(0.3865)
    assert settings.cors_origins_list == ['http://localhost:3000', 'http://localhost:5173']


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('SHIFTMINT_ASSUMED_WEEKLY_HOURS', '40')
    monkeypatch.setenv('SHIFTMINT_STATE_RATE', '0')
    monkeypatch.setenv('SHIFTMINT_CORS_ORIGINS', 'https://app.example.com, https://admin.example.com')

    settings = Settings(_env_file=None)

    assert settings.assumed_weekly_hours == 40
    assert settings.tax_settings().combined_tax_rate == pytest.approx(0.2965)
    assert settings.cors_origins_list == ['https://app.example.com', 'https://admin.example.com']


def test_invalid_settings_are_rejected(monkeypatch):
    monkeypatch.setenv('SHIFTMINT_VENUE_CLOSING_TIME', '25:00')
    with pytest.raises(ValueError):
        Settings(_env_file=None)


@pytest.mark.parametrize('value', ['2:00', '02:0', '0200', '24:00', ' 02:00'])
def test_closing_time_needs_the_detector_format(value):
    with pytest.raises(ValueError):
        Settings(_env_file=None, venue_closing_time=value)
    with pytest.raises(ValueError):
        DetectionOptions(venue_closing_time=value)


@pytest.mark.parametrize('value', ['02:00', '23:30', '00:00'])
def test_accepted_closing_time_builds_detection_options(value):
    settings = Settings(_env_file=None, venue_closing_time=value)

    options = DetectionOptions(venue_closing_time=settings.venue_closing_time)

    assert options.closing_time.strftime('%H:%M') == value


def test_json_log_lines():
    record = logging.LogRecord('shiftmint.allocation', logging.INFO, __file__, 10, 'Allocated %d', (3,), None)

    line = json.loads(JSONFormatter().format(record))

    assert line['level'] == 'INFO'
    assert line['logger'] == 'shiftmint.allocation'
    assert line['msg'] == 'Allocated 3'


def test_configure_logging_replaces_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(Settings(_env_file=None, debug=False, log_level='WARNING'))
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

        configure_logging(Settings(_env_file=None, debug=True, log_level='DEBUG'))
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
