"""
Unit tests for configuration management.
"""
import os
import shutil
import tempfile
import unittest

import yaml

from california_gwr.core.config import Config, DEFAULT_CONFIG, get_config, initialize_config
from california_gwr.core.exceptions import ConfigurationError


class TestConfig(unittest.TestCase):
    """Tests for the Config class."""

    def setUp(self):
        """Set up test fixtures."""
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)
        initialize_config(None)

    def _write(self, name, content):
        path = os.path.join(self.tmp_dir, name)
        with open(path, 'w') as f:
            f.write(content)
        return path

    def test_defaults(self):
        """Test built-in defaults without a file."""
        cfg = Config()
        self.assertEqual(cfg.get('local_fit.min_observations'), 50)
        self.assertEqual(cfg.get('local_fit.radius'), 50000.0)
        self.assertEqual(cfg.get('crs.projected'), 'EPSG:3310')
        self.assertEqual(cfg.get('gwr.criterion'), 'CV')

    def test_missing_key_returns_default(self):
        cfg = Config()
        self.assertIsNone(cfg.get('no.such.key'))
        self.assertEqual(cfg.get('local_fit.nothing', 7), 7)

    def test_missing_file_uses_defaults(self):
        cfg = Config(os.path.join(self.tmp_dir, 'absent.yaml'))
        self.assertEqual(cfg.config, DEFAULT_CONFIG)

    def test_yaml_overlays_defaults(self):
        """Test that a partial file only replaces the keys it names."""
        path = self._write('config.yaml', "local_fit:\n  radius: 25000\n")
        cfg = Config(path)

        self.assertEqual(cfg.get('local_fit.radius'), 25000)
        self.assertEqual(cfg.get('local_fit.min_observations'), 50)
        self.assertEqual(cfg.get('houses.response'), 'houseValue')

    def test_defaults_not_mutated(self):
        cfg = Config()
        cfg.set('local_fit.radius', 1.0)
        self.assertEqual(DEFAULT_CONFIG['local_fit']['radius'], 50000.0)

    def test_invalid_yaml(self):
        path = self._write('bad.yaml', "local_fit: [radius: 1\n")
        with self.assertRaises(ConfigurationError):
            Config(path)

    def test_non_mapping_yaml(self):
        path = self._write('list.yaml', "- a\n- b\n")
        with self.assertRaises(ConfigurationError):
            Config(path)

    def test_set_and_save(self):
        """Test setting nested values and saving to YAML."""
        cfg = Config()
        cfg.set('gwr.bandwidth', 12345.0)
        cfg.set('new_section.value', 3)
        self.assertEqual(cfg.get('gwr.bandwidth'), 12345.0)
        self.assertEqual(cfg.get('new_section.value'), 3)

        path = os.path.join(self.tmp_dir, 'nested', 'saved.yaml')
        cfg.save(path)
        with open(path) as f:
            saved = yaml.safe_load(f)
        self.assertEqual(saved['gwr']['bandwidth'], 12345.0)

    def test_save_without_path(self):
        with self.assertRaises(ConfigurationError):
            Config().save()

    def test_get_path_creates_directory(self):
        cfg = Config()
        target = os.path.join(self.tmp_dir, 'out', 'logs')
        cfg.set('directories.logs_dir', target)
        path = cfg.get_path('directories.logs_dir')
        self.assertTrue(path.is_dir())

        with self.assertRaises(ConfigurationError):
            cfg.get_path('directories.unknown')

    def test_initialize_config_replaces_global(self):
        path = self._write('config.yaml', "gwr:\n  kernel: bisquare\n")
        initialize_config(path)
        self.assertEqual(get_config().get('gwr.kernel'), 'bisquare')

        initialize_config(None)
        self.assertEqual(get_config().get('gwr.kernel'), 'gaussian')


if __name__ == '__main__':
    unittest.main()
