"""
Tests for configuration loading.
"""

import unittest
import tempfile
from pathlib import Path

from mhtrack.config import (
    Config, Settings, InferenceConfig, load_config, save_config, DEFAULT_CONFIG_PATH
)


class TestSettings(unittest.TestCase):
    """Test model settings."""

    def test_defaults(self):
        settings = Settings()

        self.assertTrue(settings.states_share_weights)
        self.assertFalse(settings.allow_partial_merger_appearance)
        self.assertTrue(settings.require_separate_children_of_division)
        self.assertTrue(settings.allow_length_one_tracks)
        self.assertAlmostEqual(settings.optimizer_ep_gap, 0.01)
        self.assertEqual(settings.optimizer_num_threads, 1)
        self.assertIsNone(settings.optimizer_time_limit)

    def test_from_json_dict(self):
        settings = Settings.from_json_dict({
            'statesShareWeights': False,
            'allowLengthOneTracks': False,
            'optimizerEpGap': 0.05,
            'someUnknownKey': 42
        })

        self.assertFalse(settings.states_share_weights)
        self.assertFalse(settings.allow_length_one_tracks)
        self.assertAlmostEqual(settings.optimizer_ep_gap, 0.05)
        # untouched keys keep their defaults
        self.assertTrue(settings.require_separate_children_of_division)

    def test_json_dict_roundtrip(self):
        settings = Settings(allow_partial_merger_appearance=True, optimizer_time_limit=3.5)
        restored = Settings.from_json_dict(settings.to_json_dict())

        self.assertEqual(restored, settings)
        self.assertIn('requireSeparateChildrenOfDivision', settings.to_json_dict())


class TestConfigLoader(unittest.TestCase):
    """Test configuration loading functionality."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_default_config_creation(self):
        config = Config()

        self.assertTrue(config.inference.with_integer_constraints)
        self.assertFalse(config.inference.cutting_planes)
        self.assertFalse(config.inference.retry_with_integer_constraints)
        self.assertEqual(config.learning.max_iterations, 50)
        self.assertEqual(config.logging.level, "INFO")

    def test_config_from_dict(self):
        config = Config.from_dict({
            'settings': {'allow_length_one_tracks': False},
            'inference': {'cutting_planes': True, 'retry_with_integer_constraints': True}
        })

        self.assertFalse(config.settings.allow_length_one_tracks)
        self.assertTrue(config.inference.cutting_planes)
        self.assertTrue(config.inference.retry_with_integer_constraints)
        # Verify defaults for non-specified values
        self.assertTrue(config.inference.with_integer_constraints)
        self.assertAlmostEqual(config.learning.regularizer, 1.0)

    def test_save_and_load_config(self):
        config = Config()
        config.inference.cutting_planes = True
        config.learning.learning_rate = 0.5
        config.settings.optimizer_time_limit = 10.0

        config_path = self.temp_path / 'test_config.yaml'
        save_config(config, str(config_path))
        self.assertTrue(config_path.exists())

        loaded_config = load_config(str(config_path))

        self.assertTrue(loaded_config.inference.cutting_planes)
        self.assertAlmostEqual(loaded_config.learning.learning_rate, 0.5)
        self.assertAlmostEqual(loaded_config.settings.optimizer_time_limit, 10.0)

    def test_load_config_with_missing_file(self):
        config = load_config(str(self.temp_path / 'does_not_exist.yaml'))

        self.assertEqual(config, Config())

    def test_load_config_none(self):
        self.assertEqual(load_config(None), Config())

    def test_empty_file_gives_defaults(self):
        config_path = self.temp_path / 'empty.yaml'
        config_path.write_text("")

        self.assertEqual(load_config(str(config_path)), Config())

    def test_packaged_default_config_matches_defaults(self):
        self.assertTrue(DEFAULT_CONFIG_PATH.exists())
        self.assertEqual(load_config(str(DEFAULT_CONFIG_PATH)), Config())

    def test_unknown_key_rejected(self):
        with self.assertRaises(TypeError):
            InferenceConfig(**{'no_such_option': True})


if __name__ == '__main__':
    unittest.main()
