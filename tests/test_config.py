"""Tests for configuration management"""

import pytest
import os
import tempfile
import yaml
from pathlib import Path

from config import Config, get_config_dir
from exceptions import ConfigurationError
from constants import MAX_HISTORY_ENTRIES, MIN_COMMAND_WIDTH


class TestConfig:
    """Test cases for Config class"""

    def test_default_config_values(self, tmp_path):
        """Test that defaults apply when no file exists"""
        config = Config(str(tmp_path / "missing.yaml"))

        assert config.get('shell.interpreter') == ''
        assert config.get('history.enabled') is True
        assert config.get('history.max_entries') == MAX_HISTORY_ENTRIES
        assert config.get('picker.min_command_width') == MIN_COMMAND_WIDTH
        assert config.get('output.verbose') is False

    def test_defaults_are_not_shared(self, tmp_path):
        """Test that editing one config does not leak into the defaults"""
        config = Config(str(tmp_path / "missing.yaml"))
        config.update_from_cli(**{'history.max_entries': 1})

        assert Config.DEFAULT_CONFIG['history']['max_entries'] == MAX_HISTORY_ENTRIES

    def test_config_file_loading(self, temp_config_file):
        """Test loading config from file"""
        config = Config(temp_config_file)

        assert config.get('shell.interpreter') == '/bin/bash'
        assert config.get('history.max_entries') == 5
        assert config.get('picker.min_command_width') == 30
        assert config.get('output.verbose') is True
        # untouched keys keep their defaults
        assert config.get('history.enabled') is True

    def test_config_get_with_dot_notation(self, temp_config_file):
        """Test getting config values with dot notation"""
        config = Config(temp_config_file)

        assert config.get('nonexistent.key', 'default') == 'default'
        assert config.get('history.nonexistent', 'default') == 'default'
        assert config.get('history.max_entries.deeper', 'default') == 'default'

    def test_config_update_from_cli(self, temp_config_file):
        """Test updating config from CLI arguments"""
        config = Config(temp_config_file)

        config.update_from_cli(**{
            'shell.interpreter': '/bin/zsh',
            'output.verbose': None,
            'new_section.new_key': 'new_value'
        })

        assert config.get('shell.interpreter') == '/bin/zsh'
        assert config.get('output.verbose') is True
        assert config.get('new_section.new_key') == 'new_value'

    def test_config_save_and_load(self, tmp_path):
        """Test saving and loading config"""
        path = str(tmp_path / "nested" / "config.yaml")

        config = Config(path)
        config.update_from_cli(**{'history.max_entries': 7})
        config.save()

        config2 = Config(path)
        assert config2.get('history.max_entries') == 7

    def test_invalid_config_file_handling(self):
        """Test handling of invalid config files"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("invalid: yaml: content: [")
            temp_path = f.name

        try:
            with pytest.raises(ConfigurationError):
                Config(temp_path)
        finally:
            os.unlink(temp_path)

    def test_non_mapping_config_file(self, tmp_path):
        """Test that a YAML list is rejected"""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            Config(str(path))

    def test_default_config_path(self, home_dir):
        """Test default config path generation"""
        config = Config()

        assert config.config_file == str(home_dir / '.config' / 'laziest' / 'config.yaml')
        assert get_config_dir() == home_dir / '.config' / 'laziest'

    def test_create_default_config(self, tmp_path):
        """Test writing the defaults to disk"""
        path = tmp_path / "config.yaml"
        config = Config(str(path))
        config.update_from_cli(**{'output.verbose': True})

        assert config.create_default_config() == str(path)
        with open(path) as f:
            written = yaml.safe_load(f)
        assert written == Config.DEFAULT_CONFIG

    def test_storage_paths(self, home_dir, tmp_path):
        """Test storage locations from settings and defaults"""
        config = Config(str(tmp_path / "missing.yaml"))
        assert config.commands_path == home_dir / '.config' / 'laziest' / 'commands.json'
        assert config.alias_path == home_dir / '.config' / 'laziest' / 'aliases.sh'
        assert config.history_path == home_dir / '.config' / 'laziest' / 'history.db'

        config.update_from_cli(**{'storage.commands_file': '~/cmds.json'})
        assert config.commands_path == Path(str(home_dir)) / 'cmds.json'

    def test_merge_config(self):
        """Test config merging logic"""
        config = Config.__new__(Config)
        base = {'a': {'b': 1, 'c': 2}, 'd': 3}
        override = {'a': {'b': 10}, 'e': 4}

        config._merge_config(base, override)

        assert base == {'a': {'b': 10, 'c': 2}, 'd': 3, 'e': 4}
