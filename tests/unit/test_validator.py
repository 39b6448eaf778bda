"""Tests for declared plugin validation."""

import pytest

from fakes import commit, make_spec
from revenant.core.validator import (
    is_valid_name,
    is_valid_revision,
    is_valid_source_location,
    reject_shell_metacharacters,
    validate_specs,
)
from revenant.lib.errors import ValidationError
from revenant.models.plugin import PluginSpec


class TestNames:
    @pytest.mark.parametrize(
        "name",
        ["telescope.nvim", "plenary.nvim", "nvim-cmp", "_private", "a", "LuaSnip", "a" * 100],
    )
    def test_accepts(self, name):
        assert is_valid_name(name)

    @pytest.mark.parametrize(
        "name",
        ["", "-leading-dash", ".hidden", "a" * 101, "has space", "slash/name", "ünïcode", "semi;colon"],
    )
    def test_rejects(self, name):
        assert not is_valid_name(name)


class TestSourceLocations:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/nvim-lua/plenary.nvim",
            "https://github.com/nvim-telescope/telescope.nvim.git",
            "https://github.com/owner_1/repo-name",
        ],
    )
    def test_accepts_https_github(self, url):
        assert is_valid_source_location(url)

    @pytest.mark.parametrize(
        "url",
        [
            "http://github.com/owner/repo",
            "git@github.com:owner/repo.git",
            "ssh://git@github.com/owner/repo",
            "git://github.com/owner/repo",
            "https://gitlab.com/owner/repo",
            "https://github.com/owner",
            "https://github.com/owner/repo/tree/main",
            "https://github.com/owner/repo;rm -rf",
            "",
        ],
    )
    def test_rejects_everything_else(self, url):
        assert not is_valid_source_location(url)


class TestRevisions:
    def test_accepts_full_sha_any_case(self):
        sha = commit("x")
        assert is_valid_revision(sha)
        assert is_valid_revision(sha.upper())

    @pytest.mark.parametrize("rev", ["", "abc1234", "main", "v1.0.0", "g" * 40, "a" * 41])
    def test_rejects_short_or_symbolic(self, rev):
        assert not is_valid_revision(rev)


class TestShellMetacharacters:
    @pytest.mark.parametrize("value", ["a;b", "a&b", "a|b", "a`b", "$(x)", "a<b", "a>b", "a\nb"])
    def test_rejects(self, value):
        with pytest.raises(ValidationError, match="shell metacharacters"):
            reject_shell_metacharacters(value)

    def test_plain_value_passes(self):
        reject_shell_metacharacters("https://github.com/owner/repo")


class TestValidateSpecs:
    def test_returns_list(self):
        specs = (make_spec(n) for n in ["a", "b"])
        result = validate_specs(specs)
        assert [s.name for s in result] == ["a", "b"]

    def test_empty_set(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            validate_specs([])

    def test_duplicate_name(self):
        with pytest.raises(ValidationError, match='Duplicate plugin name: "a"'):
            validate_specs([make_spec("a"), make_spec("b"), make_spec("a")])

    def test_bad_url_names_plugin(self):
        spec = PluginSpec(name="bad", repo="git@github.com:o/r.git", commit=commit("x"))
        with pytest.raises(ValidationError, match='Invalid GitHub URL for plugin "bad"'):
            validate_specs([spec])

    def test_short_commit(self):
        spec = PluginSpec(name="short", repo="https://github.com/o/r", commit="abc1234")
        with pytest.raises(ValidationError, match='Invalid commit hash for plugin "short"'):
            validate_specs([spec])

    def test_missing_field_reports_index(self):
        spec = PluginSpec(name="ok", repo="", commit=commit("x"))
        with pytest.raises(ValidationError, match="index 1 is missing required field: repo"):
            validate_specs([make_spec("first"), spec])

    def test_bad_dependency_name(self):
        spec = make_spec("a", dependencies=["../escape"])
        with pytest.raises(ValidationError, match="Invalid dependency name"):
            validate_specs([spec])

    def test_error_kind_is_validation(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_specs([make_spec("-bad")])
        assert exc_info.value.code.value == "validation_error"
