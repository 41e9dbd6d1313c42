"""Tests for detection settings."""

import json
import logging

from awareness_anchor.config import (
    AbsentPolicy,
    DetectionSettings,
    DwellConfig,
    HeadPoseConfig,
    load_settings,
)


class TestDetectionSettings:
    def test_defaults(self):
        settings = DetectionSettings()
        assert settings.pitch_threshold == HeadPoseConfig.PITCH_THRESHOLD
        assert settings.yaw_noise_threshold == 0.10
        assert settings.dwell_time == 0.15
        assert settings.frames_to_skip == 3
        assert settings.hysteresis_ratio == 1.2
        assert settings.min_speed == 0.5
        assert settings.absent_policy is AbsentPolicy.RECORD_ABSENT

    def test_clamped_fixes_out_of_range_values(self, caplog):
        settings = DetectionSettings(dwell_time=-0.5, smoothing_factor=3.0, frames_to_skip=-2,
                                     hysteresis_ratio=0.5)
        with caplog.at_level(logging.WARNING):
            fixed = settings.clamped()

        assert fixed.dwell_time == 0.0
        assert fixed.smoothing_factor == 0.99
        assert fixed.frames_to_skip == 0
        assert isinstance(fixed.frames_to_skip, int)
        assert fixed.hysteresis_ratio == 1.0
        assert "dwell_time" in caplog.text

    def test_clamped_upper_bound(self):
        assert DetectionSettings(dwell_time=60.0).clamped().dwell_time == DwellConfig.MAX_DWELL_TIME

    def test_valid_settings_unchanged(self):
        settings = DetectionSettings()
        assert settings.clamped() is settings

    def test_from_dict_ignores_unknown_keys(self, caplog):
        with caplog.at_level(logging.WARNING):
            settings = DetectionSettings.from_dict(
                {"pitch_threshold": 0.2, "absent_policy": "skip", "volume": 11}
            )
        assert settings.pitch_threshold == 0.2
        assert settings.absent_policy is AbsentPolicy.SKIP
        assert "volume" in caplog.text

    def test_load_settings(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"dwell_time": 0.3, "pointer_enabled": False}))
        settings = load_settings(str(path))
        assert settings.dwell_time == 0.3
        assert not settings.pointer_enabled
        assert DetectionSettings.from_dict(settings.to_dict()) == settings
