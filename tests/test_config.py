"""
Unit tests for profilehub.config module
"""
import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import toml
import yaml

from profilehub.config import (
    apply_env_overrides,
    get_config_path,
    get_default_config,
    load_config,
    merge_configs,
    save_config,
    set_marketplace_repository,
)
from profilehub.exit_codes import CONFIG_ERROR, ConfigError


class TestConfigManagement(unittest.TestCase):
    """Test configuration management functionality"""

    def setUp(self):
        """Set up test environment"""
        self.temp_dir = tempfile.mkdtemp()
        clean_env = {k: v for k, v in os.environ.items() if not k.startswith('PROFILEHUB_')}
        clean_env['HOME'] = self.temp_dir
        self.env_patch = patch.dict(os.environ, clean_env, clear=True)
        self.env_patch.start()
        self.config_dir = Path(self.temp_dir) / '.profilehub'

    def tearDown(self):
        """Clean up test environment"""
        self.env_patch.stop()
        shutil.rmtree(self.temp_dir)

    def test_get_default_config(self):
        """Test default configuration structure"""
        config = get_default_config()

        for section in ('general', 'marketplace', 'github', 'credentials',
                        'device_flow', 'fork', 'logging'):
            self.assertIn(section, config)

        self.assertEqual(config['marketplace']['base_branch'], 'main')
        self.assertEqual(config['github']['api_url'], 'https://api.github.com')
        self.assertEqual(config['github']['oauth_client_id'], '')
        self.assertEqual(config['device_flow']['slow_down_increment'], 5)
        self.assertEqual(config['fork']['poll_attempts'], 30)

    def test_load_config_no_file(self):
        """Test loading config when no file exists"""
        config = load_config()
        self.assertEqual(config, get_default_config())

    def test_default_config_path(self):
        self.assertEqual(get_config_path(), self.config_dir / 'config.json')

    def test_load_config_json_file(self):
        """Test loading config from JSON file"""
        self.config_dir.mkdir()
        (self.config_dir / 'config.json').write_text(json.dumps({
            'marketplace': {'repository': 'my-org/profiles'},
        }))

        config = load_config()

        self.assertEqual(config['marketplace']['repository'], 'my-org/profiles')
        # Defaults still merged in
        self.assertEqual(config['marketplace']['base_branch'], 'main')

    def test_load_config_toml_file(self):
        self.config_dir.mkdir()
        (self.config_dir / 'config.toml').write_text(toml.dumps({
            'fork': {'poll_attempts': 3},
        }))

        config = load_config()

        self.assertEqual(config['fork']['poll_attempts'], 3)
        self.assertEqual(config['fork']['poll_interval'], 2)

    def test_load_config_yaml_file(self):
        self.config_dir.mkdir()
        (self.config_dir / 'config.yaml').write_text(yaml.safe_dump({
            'github': {'oauth_client_id': 'Iv1.yaml'},
        }))

        config = load_config()

        self.assertEqual(config['github']['oauth_client_id'], 'Iv1.yaml')

    def test_explicit_config_path(self):
        custom = Path(self.temp_dir) / 'elsewhere.json'
        custom.write_text(json.dumps({'general': {'target_dir': '/work'}}))
        os.environ['PROFILEHUB_CONFIG'] = str(custom)

        self.assertEqual(get_config_path(), custom)
        self.assertEqual(load_config()['general']['target_dir'], '/work')

    def test_invalid_file_falls_back_to_defaults(self):
        self.config_dir.mkdir()
        (self.config_dir / 'config.json').write_text('{"marketplace": broken json here}')

        config = load_config()

        self.assertEqual(config['marketplace']['repository'], 'profilehub/marketplace')

    def test_save_config_round_trip(self):
        config = get_default_config()
        config['marketplace']['repository'] = 'a/b'

        path = save_config(config)

        self.assertEqual(path, self.config_dir / 'config.json')
        self.assertEqual(load_config()['marketplace']['repository'], 'a/b')

    def test_save_config_failure(self):
        with patch('builtins.open', side_effect=PermissionError("read-only")):
            with self.assertRaises(ConfigError) as ctx:
                save_config(get_default_config())
        self.assertEqual(ctx.exception.exit_code, CONFIG_ERROR)


class TestEnvOverrides(unittest.TestCase):

    def test_nested_override(self):
        with patch.dict(os.environ, {'PROFILEHUB_GITHUB_OAUTH_CLIENT_ID': 'Iv1.env'}):
            config = apply_env_overrides(get_default_config())
        self.assertEqual(config['github']['oauth_client_id'], 'Iv1.env')

    def test_longest_key_match(self):
        with patch.dict(os.environ, {'PROFILEHUB_DEVICE_FLOW_SLOW_DOWN_INCREMENT': '9'}):
            config = apply_env_overrides(get_default_config())
        self.assertEqual(config['device_flow']['slow_down_increment'], 9)

    def test_repository_override(self):
        with patch.dict(os.environ, {'PROFILEHUB_MARKETPLACE_REPOSITORY': 'org/market'}):
            config = apply_env_overrides(get_default_config())
        self.assertEqual(config['marketplace']['repository'], 'org/market')

    def test_unknown_key_ignored(self):
        with patch.dict(os.environ, {'PROFILEHUB_NOPE_THING': '1'}):
            config = apply_env_overrides(get_default_config())
        self.assertEqual(config, get_default_config())


class TestMergeConfigs(unittest.TestCase):

    def test_recursive_merge(self):
        merged = merge_configs({'a': {'x': 1, 'y': 2}, 'b': 1}, {'a': {'y': 3}, 'c': 4})
        self.assertEqual(merged, {'a': {'x': 1, 'y': 3}, 'b': 1, 'c': 4})


class TestSetMarketplaceRepository(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        clean_env = {k: v for k, v in os.environ.items() if not k.startswith('PROFILEHUB_')}
        clean_env['HOME'] = self.temp_dir
        self.env_patch = patch.dict(os.environ, clean_env, clear=True)
        self.env_patch.start()
        self.config_file = Path(self.temp_dir) / '.profilehub' / 'config.json'

    def tearDown(self):
        self.env_patch.stop()
        shutil.rmtree(self.temp_dir)

    def write_config(self, data):
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(json.dumps(data))

    def test_invalid_format(self):
        for bad in ('no-slash', 'a/b/c', 'has space/repo', ''):
            with self.assertRaises(ConfigError):
                set_marketplace_repository(bad)
        self.assertFalse(self.config_file.exists())

    def test_saves_repository(self):
        path = set_marketplace_repository('my-org/claude-profiles')

        saved = json.loads(Path(path).read_text())
        self.assertEqual(saved, {'marketplace': {'repository': 'my-org/claude-profiles'}})

    def test_env_overrides_not_persisted(self):
        self.write_config({'marketplace': {'repository': 'old/market', 'base_branch': 'trunk'}})
        os.environ['PROFILEHUB_GITHUB_OAUTH_CLIENT_ID'] = 'Iv1.from-env'

        path = set_marketplace_repository('org/repo')

        saved = json.loads(Path(path).read_text())
        self.assertEqual(saved, {'marketplace': {'repository': 'org/repo', 'base_branch': 'trunk'}})
        self.assertEqual(load_config()['github']['oauth_client_id'], 'Iv1.from-env')

    def test_other_stored_settings_kept(self):
        self.write_config({'github': {'oauth_client_id': 'Iv1.stored'}})

        set_marketplace_repository('org/repo')

        saved = json.loads(self.config_file.read_text())
        self.assertEqual(saved['github'], {'oauth_client_id': 'Iv1.stored'})
        self.assertEqual(saved['marketplace'], {'repository': 'org/repo'})

    def test_unreadable_file_left_alone(self):
        self.config_file.parent.mkdir(parents=True)
        self.config_file.write_text('{"marketplace": broken json')

        with self.assertRaises(ConfigError):
            set_marketplace_repository('org/repo')

        self.assertEqual(self.config_file.read_text(), '{"marketplace": broken json')


if __name__ == '__main__':
    unittest.main()
