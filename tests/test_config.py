import os

import pytest
from pydantic import ValidationError

from routerisk.config import Settings


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.cache_ttl_s == 60
        assert s.hazard_timeout_s == 3
        assert s.road_router_url == "http://localhost:3000/api/roads/navigation"
        assert s.hazard_feed_url("jamming") == "http://localhost:3000/api/aviation/gps"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            Settings(cache_ttl=5)

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ROUTERISK_BASE_URL", "http://feeds.internal:8080/")
        monkeypatch.setenv("ROUTERISK_CACHE_TTL_S", "5")
        monkeypatch.setenv("ROUTERISK_HAZARD_MODE", "static")
        monkeypatch.setenv("ROUTERISK_LOG_LEVEL", "")
        s = Settings.from_env(tmp_path / "missing.env")
        assert s.cache_ttl_s == 5.0
        assert s.hazard_mode == "static"
        assert s.log_level == "INFO"
        assert s.rail_router_url == "http://feeds.internal:8080/api/rail/navigation"

    def test_env_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("ROUTERISK_GAP_TOLERANCE_KM", raising=False)
        env = tmp_path / ".env"
        env.write_text("ROUTERISK_GAP_TOLERANCE_KM=12.5\n")
        s = Settings.from_env(env)
        os.environ.pop("ROUTERISK_GAP_TOLERANCE_KM", None)
        assert s.gap_tolerance_km == 12.5

    def test_invalid_env_value(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ROUTERISK_HAZARD_TIMEOUT_S", "0")
        with pytest.raises(ValidationError):
            Settings.from_env(tmp_path / "missing.env")
