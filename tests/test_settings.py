"""Tests for core.settings — parsing, validation, default config."""

import json

import pytest

from cfddns.config import DEFAULT_IP_SERVICES
from cfddns.core.models import DomainMode, SelectedRecord
from cfddns.core.settings import (
    ConfigError,
    Settings,
    load_settings,
    write_default_config,
)


def _single(**overrides):
    data = {"domain_mode": "SINGLE_TARGET", "domain": "example.com", "subdomain": "home"}
    data.update(overrides)
    return data


class TestDomainModes:
    def test_single_target(self):
        s = Settings.from_dict(_single())
        assert s.domain_mode is DomainMode.SINGLE_TARGET
        assert s.target_record_name == "home.example.com"

    def test_apex_sentinel(self):
        s = Settings.from_dict(_single(subdomain="@"))
        assert s.target_record_name == "example.com"

    def test_single_target_requires_domain_and_subdomain(self):
        with pytest.raises(ConfigError, match="SINGLE_TARGET"):
            Settings.from_dict(_single(subdomain=""))

    @pytest.mark.parametrize("legacy, mode", [
        ("SIMPLE", DomainMode.SINGLE_TARGET),
        ("specific", DomainMode.EXPLICIT_LIST),
        ("ALL", DomainMode.ALL_ZONES),
    ])
    def test_legacy_names(self, legacy, mode):
        data = _single(domain_mode=legacy, selected_records=[])
        assert Settings.from_dict(data).domain_mode is mode

    def test_invalid_mode(self):
        with pytest.raises(ConfigError, match="Invalid domain_mode"):
            Settings.from_dict({"domain_mode": "SOME"})

    def test_all_zones_needs_nothing_else(self):
        s = Settings.from_dict({"domain_mode": "ALL_ZONES"})
        assert s.selected_records == ()


class TestSelectedRecords:
    def test_accepts_objects_and_legacy_strings(self):
        s = Settings.from_dict({
            "domain_mode": "EXPLICIT_LIST",
            "selected_records": [
                {"zone_id": "z1", "record_id": "r1", "record_name": "a.x.com", "record_type": "A"},
                "z2:r2:b.x.com:A",
            ],
        })
        assert s.selected_records == (
            SelectedRecord("z1", "r1", "a.x.com", "A"),
            SelectedRecord("z2", "r2", "b.x.com", "A"),
        )

    def test_malformed_entries_are_kept(self):
        s = Settings.from_dict({
            "domain_mode": "EXPLICIT_LIST",
            "selected_records": ["z1::a.x.com:A", {"zone_id": "z2"}, 42],
        })
        assert len(s.selected_records) == 3
        assert not any(r.is_complete for r in s.selected_records)
        assert s.selected_records[0].record_id == ""

    def test_explicit_list_requires_list(self):
        with pytest.raises(ConfigError, match="selected_records"):
            Settings.from_dict({"domain_mode": "EXPLICIT_LIST"})


class TestKnobs:
    def test_defaults(self):
        s = Settings.from_dict(_single())
        assert s.ip_services == DEFAULT_IP_SERVICES
        assert s.max_retries == 3
        assert s.sleep_between_retries == 5
        assert s.max_wait_for_net == 300
        assert s.wait_interval == 10
        assert s.run_interval == "5min"
        assert s.log_max_lines == 1000
        assert s.skip_verification is False

    def test_custom_ip_service_appended(self):
        s = Settings.from_dict(_single(custom_ip_service="https://ip.example.net"))
        assert len(s.ip_services) == 6
        assert s.ip_services[-1] == "https://ip.example.net"

    @pytest.mark.parametrize("key, value", [
        ("max_retries", 0),
        ("max_retries", 11),
        ("sleep_between_retries", 31),
        ("max_wait_for_net", 30),
        ("wait_interval", 0),
        ("max_retries", "many"),
        ("max_retries", True),
    ])
    def test_out_of_range(self, key, value):
        with pytest.raises(ConfigError, match=key):
            Settings.from_dict(_single(**{key: value}))

    def test_string_booleans(self):
        s = Settings.from_dict(_single(skip_verification="true", detailed_logging="False"))
        assert s.skip_verification is True
        assert s.detailed_logging is False

    def test_bad_boolean(self):
        with pytest.raises(ConfigError, match="skip_verification"):
            Settings.from_dict(_single(skip_verification="yes"))

    def test_bad_run_interval(self):
        with pytest.raises(ConfigError, match="run_interval"):
            Settings.from_dict(_single(run_interval="every five minutes"))

    def test_to_dict_round_trip(self):
        s = Settings.from_dict({
            "domain_mode": "EXPLICIT_LIST",
            "selected_records": ["z1:r1:a.x.com:A"],
            "selected_zones": ["x.com"],
            "max_retries": 5,
        })
        assert Settings.from_dict(s.to_dict()) == s


class TestFiles:
    def test_load_settings(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(_single()))
        assert load_settings(path).domain == "example.com"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("DOMAIN_MODE=SIMPLE\n")
        with pytest.raises(ConfigError, match="not valid JSON"):
            load_settings(path)

    def test_write_default_config_idempotent(self, tmp_path):
        path = tmp_path / "sub" / "config.json"
        assert write_default_config(path) is True
        path.write_text(json.dumps(_single()))
        assert write_default_config(path) is False
        assert load_settings(path).subdomain == "home"

    def test_default_config_needs_domain(self, tmp_path):
        path = tmp_path / "config.json"
        write_default_config(path)
        with pytest.raises(ConfigError, match="SINGLE_TARGET"):
            load_settings(path)
