"""Tests for layered analyzer settings."""

from pathlib import Path

from codesweep_cli import config
from codesweep_cli.config_manager import AnalyzerSettings, apply_overrides, load_settings, load_toml


def test_defaults_without_config_files(temp_dir: Path):
    """Test that a root without config files yields the built-in defaults."""
    settings = load_settings(temp_dir)

    assert settings.contexts == ("client", "server")
    assert settings.scope_aware is False
    assert settings.lenient_parse is False
    assert settings.fuzzy_references is True
    assert "node_modules" in settings.skip_dirs
    assert settings.aliases == config.DEFAULT_ALIASES


def test_project_config_overrides_defaults(temp_dir: Path):
    """Test reading the [analyzer] table from codesweep.toml."""
    (temp_dir / "codesweep.toml").write_text(
        '[analyzer]\n'
        'contexts = ["web", "api"]\n'
        'scope_aware = true\n'
        'skip_dirs = ["vendor"]\n'
        '\n'
        '[analyzer.aliases]\n'
        '"#/" = "lib/"\n'
    )

    settings = load_settings(temp_dir)

    assert settings.contexts == ("web", "api")
    assert settings.scope_aware is True
    assert settings.skip_dirs == frozenset({"vendor"})
    assert settings.aliases["#/"] == "lib/"
    # Built-in aliases survive a partial alias table
    assert settings.aliases["@/"] == ""


def test_project_config_beats_user_config(temp_dir: Path):
    """Test that the project file is applied after the user file."""
    user = temp_dir / "user.toml"
    user.write_text('[analyzer]\nlenient_parse = true\nscope_aware = true\n')
    (temp_dir / "codesweep.toml").write_text('[analyzer]\nscope_aware = false\n')

    settings = load_settings(temp_dir, user_config=user)

    assert settings.lenient_parse is True
    assert settings.scope_aware is False


def test_cli_overrides_win_and_none_is_skipped(temp_dir: Path):
    """Test that flag values override files and unset flags do not."""
    (temp_dir / "codesweep.toml").write_text('[analyzer]\nfuzzy_references = false\nscope_aware = true\n')

    settings = load_settings(temp_dir, scope_aware=None, fuzzy_references=True)

    assert settings.scope_aware is True
    assert settings.fuzzy_references is True


def test_malformed_toml_is_ignored(temp_dir: Path):
    """Test that a broken config file falls back to defaults."""
    path = temp_dir / "codesweep.toml"
    path.write_text("[analyzer\ncontexts = ")

    assert load_toml(path) == {}
    assert load_settings(temp_dir).contexts == ("client", "server")


def test_missing_file_is_empty(temp_dir: Path):
    """Test that a missing config file contributes nothing."""
    assert load_toml(temp_dir / "absent.toml") == {}


def test_invalid_values_are_ignored():
    """Test that wrongly typed values leave the setting unchanged."""
    base = AnalyzerSettings()
    settings = apply_overrides(base, {"contexts": "client", "aliases": ["@/"], "bogus": 1})

    assert settings.contexts == base.contexts
    assert settings.aliases == base.aliases
