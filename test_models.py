#!/usr/bin/env python3
"""
Test script for models, configuration and errors

Tests:
- Snapshot wire format
- Country code and carrier normalization
- ContextConfig validation and loading
- Error codes
"""

import logging
import os
import sys

# Add adcontext to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from adcontext.config import ContextConfig
from adcontext.constants import (
    AppTrackingStatus,
    ConnectionType,
    ScreenOrientation,
    to_alpha3,
)
from adcontext.delivery import assign_slot_script, parse_slot_assignment
from adcontext.errors import (
    ERRORS_BY_CODE,
    ErrorCode,
    InvalidConfigurationError,
    NotInitializedError,
    UnsupportedConsumerError,
)
from adcontext.logs import PACKAGE_LOGGER, configure_logging
from adcontext.models import (
    DeliveryReport,
    DeviceSnapshot,
    GeoSnapshot,
    MobileSnapshot,
    OSVersion,
    ScreenGeometry,
    StepOutcome,
    accuracy_is_valid,
    utc_offset_minutes,
)
from adcontext.readers import HostReaders, normalize_carrier


# =============================================================================
# SNAPSHOTS
# =============================================================================

def test_geo_snapshot_through_slot_script():
    print("\n" + "=" * 60)
    print("TESTING GEO PAYLOAD")
    print("=" * 60)

    geo = GeoSnapshot(
        utcoffset=-480,
        lat=37.7749,
        lon=-122.4194,
        country="US",
        city="San Francisco",
        zip="94102",
        accuracy=100.0,
    )

    slot, payload = parse_slot_assignment(assign_slot_script("bwsGeo", geo.to_json()))

    assert slot == "bwsGeo"
    assert payload == {
        "lat": 37.7749,
        "lon": -122.4194,
        "country": "US",
        "city": "San Francisco",
        "zip": "94102",
        "accuracy": 100.0,
        "utcoffset": -480,
    }
    assert GeoSnapshot.from_dict(payload) == geo
    print(f"  {geo.to_json()}")


def test_geo_snapshot_omits_absent_fields():
    geo = GeoSnapshot(utcoffset=540)
    assert geo.to_dict() == {"utcoffset": 540}
    assert geo.to_json() == '{"utcoffset":540}'
    assert not geo.has_coordinate
    assert GeoSnapshot.from_json(geo.to_json()) == geo


def test_offset_only_uses_local_offset():
    geo = GeoSnapshot.offset_only()
    assert geo.utcoffset == utc_offset_minutes()
    assert -14 * 60 <= geo.utcoffset <= 14 * 60


def test_non_ascii_city_survives():
    geo = GeoSnapshot(utcoffset=60, city="Zürich")
    assert "Zürich" in geo.to_json()
    _, payload = parse_slot_assignment(assign_slot_script("bwsGeo", geo.to_json()))
    assert payload["city"] == "Zürich"


def test_mobile_snapshot_without_idfa():
    mobile = MobileSnapshot(app_id="com.example.app")
    assert mobile.to_dict() == {"is_app": True, "app_id": "com.example.app"}
    assert MobileSnapshot.from_dict(mobile.to_dict()) == mobile


def test_device_snapshot_wire_keys():
    device = DeviceSnapshot(
        platform="iOS",
        brand="Apple",
        model="iPhone15,2",
        os_version=OSVersion.parse("17.4.1"),
        carrier="Verizon",
        screen_width=1179,
        screen_height=2556,
        screen_ratio=2167,
        screen_orientation=ScreenOrientation.PORTRAIT,
        hardware_version="iPhone15,2",
        limit_ad_tracking=False,
        app_tracking_status=AppTrackingStatus.AUTHORIZED,
        connection=ConnectionType.CELL_4G,
    )

    data = device.to_dict()
    assert data["os_version"] == {"major": 17, "minor": 4, "micro": 1}
    assert data["screen_pixel_ratio_millis"] == 2167
    assert data["screen_orientation"] == 1
    assert data["app_tracking_authorization_status"] == 3
    assert data["connection_type"] == 6
    assert data["limit_ad_tracking"] is False
    assert DeviceSnapshot.from_dict(data) == device


def test_os_version_parse():
    assert OSVersion.parse("17.4.1") == OSVersion(17, 4, 1)
    assert OSVersion.parse("16.0") == OSVersion(16, 0, None)
    assert OSVersion.parse("10.15.7-beta") == OSVersion(10, 15, None)
    assert OSVersion.parse("") == OSVersion()
    assert OSVersion.parse("16.0").to_dict() == {"major": 16, "minor": 0}


def test_screen_geometry():
    screen = ScreenGeometry(width=390, height=844, scale=3.0)
    assert screen.pixel_width == 1170
    assert screen.pixel_height == 2532
    assert screen.ratio_millis == 2164
    assert ScreenGeometry(width=0, height=844).ratio_millis is None


def test_accuracy_bounds():
    assert accuracy_is_valid(0.5)
    assert accuracy_is_valid(999.9)
    assert not accuracy_is_valid(0.0)
    assert not accuracy_is_valid(1000.0)
    assert not accuracy_is_valid(-5.0)
    assert not accuracy_is_valid(None)


def test_delivery_report_summary():
    report = DeliveryReport(steps=[
        StepOutcome(index=0, name="set_mobile", success=True),
        StepOutcome(index=1, name="set_geo", success=False, error="boom"),
    ])
    assert report.evaluations == 2
    assert [s.name for s in report.failures] == ["set_geo"]
    assert report.to_dict()["steps"][1]["error"] == "boom"


# =============================================================================
# NORMALIZATION
# =============================================================================

def test_to_alpha3():
    assert to_alpha3("US") == "USA"
    assert to_alpha3("JP") == "JPN"
    assert to_alpha3("FI") == "FIN"
    assert to_alpha3("ZZ") == "ZZ"
    assert to_alpha3(None) is None


def test_normalize_carrier():
    assert normalize_carrier("Verizon") == "Verizon"
    assert normalize_carrier("Télécom Façile") == "Telecom Facile"
    assert normalize_carrier("--") == ""
    assert normalize_carrier(None) == ""
    assert normalize_carrier("") == ""


def test_host_readers_defaults():
    readers = HostReaders(app_id="com.example.host")
    assert readers.app_identifier() == "com.example.host"
    assert readers.ad_identifier() is None
    assert readers.tracking_authorization() == AppTrackingStatus.NOT_DETERMINED

    screen = readers.screen_geometry()
    assert (screen.pixel_width, screen.pixel_height) == (375, 667)
    assert screen.orientation == ScreenOrientation.PORTRAIT
    assert readers.platform_name()


# =============================================================================
# CONFIGURATION
# =============================================================================

def test_config_defaults_are_valid():
    config = ContextConfig()
    assert config.validate() == []
    assert config.location_timeout == 10.0
    assert config.completion_retry_delay == 1.0
    assert config.report_5g_as_4g
    assert ContextConfig.from_dict(config.to_dict()) == config


def test_config_validation_problems():
    config = ContextConfig(
        location_timeout=0,
        completion_retry_delay=-1,
        app_id_override="  ",
        geocoder_url="ftp://example.com",
    )
    problems = config.validate()
    assert len(problems) == 4
    assert any("location_timeout" in p for p in problems)


def test_config_from_dict_ignores_unknown_keys():
    config = ContextConfig.from_dict({"logging_enabled": True, "theme": "dark"})
    assert config.logging_enabled
    assert not hasattr(config, "theme")


def test_config_from_yaml(tmp_path):
    nested = tmp_path / "nested.yaml"
    nested.write_text(
        "adcontext:\n"
        "  app_id_override: com.example.yaml\n"
        "  location_timeout: 5\n"
        "  report_5g_as_4g: false\n"
    )
    config = ContextConfig.from_yaml(nested)
    assert config.app_id_override == "com.example.yaml"
    assert config.location_timeout == 5
    assert not config.report_5g_as_4g

    flat = tmp_path / "flat.yaml"
    flat.write_text("logging_enabled: true\n")
    assert ContextConfig.from_yaml(str(flat)).logging_enabled

    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert ContextConfig.from_yaml(empty) == ContextConfig()


# =============================================================================
# ERRORS AND LOGGING
# =============================================================================

def test_error_codes_and_metadata():
    error = NotInitializedError()
    assert error.code == ErrorCode.NOT_INITIALIZED == 1000
    assert "initialize" in str(error)
    assert error.failure_reason
    assert error.recovery_suggestion

    assert ERRORS_BY_CODE[1004] is UnsupportedConsumerError
    assert sorted(int(code) for code in ERRORS_BY_CODE) == [1000, 1001, 1002, 1003, 1004]

    invalid = InvalidConfigurationError(["location_timeout must be positive"])
    assert invalid.problems == ["location_timeout must be positive"]
    assert "location_timeout" in str(invalid)


def test_configure_logging_toggle():
    logger = configure_logging(True)
    assert logger.name == PACKAGE_LOGGER
    assert logger.level == logging.DEBUG
    handlers = len(logger.handlers)

    # Enabling twice does not stack handlers
    configure_logging(True)
    assert len(logger.handlers) == handlers

    configure_logging(False)
    assert len(logger.handlers) == handlers - 1
    assert not logger.isEnabledFor(logging.CRITICAL)
