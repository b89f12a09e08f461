import dataclasses
import unittest

from pbp_engine.engine_config import (
    EngineConfig,
    InjuryModelDisabled,
    InjuryModelEnabled,
    build_engine_config,
)


class BuildEngineConfigTests(unittest.TestCase):
    def test_defaults(self):
        cfg = build_engine_config()
        self.assertEqual(cfg.quarter_length, 720)
        self.assertEqual(cfg.regulation_minutes, 48)
        self.assertEqual(cfg.timeouts_per_team, 7)
        self.assertIsInstance(cfg.injury_model, InjuryModelDisabled)

    def test_unknown_key_rejected(self):
        with self.assertRaisesRegex(ValueError, "unknown keys"):
            build_engine_config({"quarter_len": 600})

    def test_non_mapping_rejected(self):
        with self.assertRaises(TypeError):
            build_engine_config([("quarter_length", 600)])

    def test_injury_model_toggle(self):
        self.assertIsInstance(build_engine_config({"injury_model": "enabled"}).injury_model, InjuryModelEnabled)
        self.assertIsInstance(build_engine_config({"injury_model": False}).injury_model, InjuryModelDisabled)
        custom = build_engine_config({"injury_model": {"threshold": 25, "rate_per_point": 0.01}}).injury_model
        self.assertEqual(custom, InjuryModelEnabled(threshold=25.0, rate_per_point=0.01))
        off = build_engine_config({"injury_model": {"enabled": False}}).injury_model
        self.assertIsInstance(off, InjuryModelDisabled)
        with self.assertRaises(ValueError):
            build_engine_config({"injury_model": "sometimes"})

    def test_recovery_overrides_merge_with_defaults(self):
        cfg = build_engine_config({"recovery": {"timeout": 5}})
        self.assertEqual(cfg.recovery["timeout"], 5.0)
        self.assertEqual(cfg.recovery["halftime"], 15.0)
        with self.assertRaises(TypeError):
            cfg.recovery["timeout"] = 1.0

    def test_config_is_frozen(self):
        cfg = EngineConfig()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            cfg.quarter_length = 600

    def test_shorter_quarters_shrink_regulation(self):
        cfg = build_engine_config({"quarter_length": 600})
        self.assertEqual(cfg.regulation_minutes, 40)


if __name__ == "__main__":
    unittest.main()
