"""Tests for reading, validating and creating the plugin config file."""

import json

import pytest

from fakes import commit
from revenant.core.manifest import (
    EXAMPLE_COMMIT,
    example_config,
    lock_path_for,
    parse_config_data,
    parse_config_file,
    resolve_config_path,
    write_example_config,
)
from revenant.lib.errors import ConfigError, DependencyCycleError, ValidationError


def plugin_entry(name, **extra):
    entry = {
        "name": name,
        "repo": f"https://github.com/owner/{name}",
        "commit": commit(name),
    }
    entry.update(extra)
    return entry


@pytest.fixture
def write_config(tmp_path):
    def _write(data, name="plugins.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data) if not isinstance(data, str) else data)
        return path

    return _write


class TestParseConfigData:
    def test_valid_config(self):
        config = parse_config_data(
            {
                "installDir": "~/plugins",
                "plugins": [
                    plugin_entry("plenary.nvim"),
                    plugin_entry("telescope.nvim", dependencies=["plenary.nvim"]),
                ],
            }
        )
        assert config.names() == ["plenary.nvim", "telescope.nvim"]
        assert config.install_dir == "~/plugins"
        assert config.plugins[1].dependencies == ["plenary.nvim"]

    def test_null_dependencies_become_empty(self):
        config = parse_config_data({"plugins": [plugin_entry("a", dependencies=None)]})
        assert config.plugins[0].dependencies == []

    def test_unknown_keys_ignored(self):
        config = parse_config_data({"plugins": [plugin_entry("a", lazy=True)]})
        assert config.names() == ["a"]

    @pytest.mark.parametrize("data", [[], {}, {"plugins": None}, "plugins"])
    def test_requires_plugins_array(self, data):
        with pytest.raises(ValidationError):
            parse_config_data(data)

    def test_empty_plugins(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            parse_config_data({"plugins": []})

    def test_missing_field(self):
        entry = plugin_entry("a")
        del entry["commit"]
        with pytest.raises(ValidationError, match="index 0 is missing required field: commit"):
            parse_config_data({"plugins": [entry]})

    def test_non_object_entry(self):
        with pytest.raises(ValidationError, match="index 1 must be an object"):
            parse_config_data({"plugins": [plugin_entry("a"), "b"]})

    def test_dependencies_must_be_list(self):
        with pytest.raises(ValidationError, match="dependencies must be an array"):
            parse_config_data({"plugins": [plugin_entry("a", dependencies="b")]})

    def test_install_dir_must_be_string(self):
        with pytest.raises(ValidationError, match="installDir"):
            parse_config_data({"installDir": 3, "plugins": [plugin_entry("a")]})

    def test_field_rules_applied(self):
        with pytest.raises(ValidationError, match="Invalid GitHub URL"):
            parse_config_data({"plugins": [plugin_entry("a", repo="http://github.com/o/a")]})

    def test_cycles_are_left_to_resolution(self):
        # Field validation passes; the resolver reports the cycle later
        config = parse_config_data(
            {"plugins": [plugin_entry("a", dependencies=["a"])]}
        )
        assert config.plugins[0].dependencies == ["a"]


class TestParseConfigFile:
    def test_reads_file(self, write_config):
        path = write_config({"plugins": [plugin_entry("a")]})
        assert parse_config_file(path).names() == ["a"]

    def test_invalid_json(self, write_config):
        path = write_config("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON in configuration file"):
            parse_config_file(path)

    def test_unreadable(self, tmp_path):
        with pytest.raises(ConfigError, match="Failed to read configuration file"):
            parse_config_file(tmp_path / "missing.json")


class TestResolveConfigPath:
    def test_explicit_path(self, write_config):
        path = write_config({"plugins": []})
        assert resolve_config_path(str(path)) == path

    def test_explicit_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="Configuration file not found at"):
            resolve_config_path(str(tmp_path / "nope.json"))

    def test_local_file_wins(self, tmp_path, monkeypatch, isolated_config):
        monkeypatch.chdir(tmp_path)
        local = tmp_path / ".revenant.json"
        local.write_text("{}")
        isolated_config.mkdir(parents=True)
        (isolated_config / "plugins.json").write_text("{}")
        assert resolve_config_path() == local

    def test_global_fallback(self, tmp_path, monkeypatch, isolated_config):
        workdir = tmp_path / "work"
        workdir.mkdir()
        monkeypatch.chdir(workdir)
        isolated_config.mkdir(parents=True)
        global_config = isolated_config / "plugins.json"
        global_config.write_text("{}")
        assert resolve_config_path() == global_config

    def test_nothing_found(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigError, match="revenant init"):
            resolve_config_path()


class TestLockPathFor:
    def test_local(self, tmp_path):
        assert lock_path_for(tmp_path / ".revenant.json") == tmp_path / ".revenant.lock"

    def test_global(self, tmp_path):
        assert lock_path_for(tmp_path / "plugins.json") == tmp_path / "plugins.lock"

    def test_other(self, tmp_path):
        assert lock_path_for(tmp_path / "work.json") == tmp_path / "work.json.lock"


class TestExampleConfig:
    def test_write_and_parse(self, tmp_path):
        path = write_example_config(tmp_path / "sub" / ".revenant.json")
        data = json.loads(path.read_text())
        assert data == example_config()
        assert data["plugins"][0]["commit"] == EXAMPLE_COMMIT
        assert parse_config_file(path).names() == ["example-plugin"]

    def test_refuses_overwrite(self, tmp_path):
        path = tmp_path / ".revenant.json"
        path.write_text("{}")
        with pytest.raises(ConfigError, match="already exists"):
            write_example_config(path)
        assert path.read_text() == "{}"

    def test_force_overwrites(self, tmp_path):
        path = tmp_path / ".revenant.json"
        path.write_text("{}")
        write_example_config(path, force=True)
        assert "example-plugin" in path.read_text()


def test_cycle_error_is_a_validation_error():
    assert issubclass(DependencyCycleError, ValidationError)
