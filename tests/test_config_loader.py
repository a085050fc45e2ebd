"""Tests for configuration loader."""

from pathlib import Path

import pytest

from dropsync.config_loader import (
    AppEntry,
    Config,
    ConfigError,
    get_sync_root,
    load_config,
    load_config_from_sync_root,
)


def make_config(apps, **extra):
    return Config({"apps": apps, **extra})


class TestConfig:
    """Config tests."""

    def test_missing_apps_key(self):
        with pytest.raises(ConfigError):
            Config({"logging": {}})

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ConfigError):
            Config(["not", "a", "mapping"])

    def test_app_block_must_be_mapping(self):
        with pytest.raises(ConfigError):
            make_config({"foo": "bar"})

    def test_logging_defaults(self):
        config = make_config({})

        assert config.log_level == "INFO"
        assert config.log_file_path is None
        assert config.log_max_size_mb == 10
        assert config.log_backup_count == 5

    def test_logging_values(self):
        config = make_config(
            {},
            logging={"level": "DEBUG", "file_path": "sync.log", "max_size_mb": 1, "backup_count": 0},
        )

        assert config.log_level == "DEBUG"
        assert config.log_file_path == "sync.log"
        assert config.log_max_size_mb == 1
        assert config.log_backup_count == 0

    @pytest.mark.parametrize(
        "logging_config",
        [
            "verbose",
            {"max_size_mb": "10"},
            {"max_size_mb": 0},
            {"max_size_mb": True},
            {"max_size_mb": 1.5},
            {"backup_count": "5"},
            {"backup_count": -1},
            {"level": 10},
            {"file_path": ["a.log"]},
        ],
    )
    def test_invalid_logging_values(self, logging_config):
        with pytest.raises(ConfigError, match="logging"):
            make_config({}, logging=logging_config)

    def test_resolve_basic_entry(self, tmp_path):
        config = make_config({"app1": {"path": "/data/app1", "dropbox_path": "MyAppData/app1"}})

        entry = config.resolve_app("app1", "host", tmp_path)

        assert entry == AppEntry(
            name="app1",
            local_path=Path("/data/app1"),
            mirror_path=tmp_path / "MyAppData" / "app1",
        )

    def test_host_override_shallow_merges(self, tmp_path):
        config = make_config(
            {
                "app1": {
                    "path": "/default/path",
                    "dropbox_path": "Saves/app1",
                    "include_only": "*.sav",
                    "laptop": {"path": "/laptop/path"},
                    "desktop": {"path": "/desktop/path", "disabled": True},
                }
            }
        )

        laptop = config.resolve_app("app1", "laptop", tmp_path)
        desktop = config.resolve_app("app1", "desktop", tmp_path)
        other = config.resolve_app("app1", "other", tmp_path)

        assert laptop.local_path == Path("/laptop/path")
        assert laptop.include_only == "*.sav"
        assert laptop.mirror_path == tmp_path / "Saves" / "app1"
        assert desktop.disabled is True
        assert other.local_path == Path("/default/path")

    def test_missing_required_key(self, tmp_path):
        config = make_config({"app1": {"path": "/data"}})

        with pytest.raises(ConfigError, match="dropbox_path"):
            config.resolve_app("app1", "host", tmp_path)

    def test_wrong_types(self, tmp_path):
        config = make_config(
            {
                "bad_path": {"path": 5, "dropbox_path": "x"},
                "bad_disabled": {"path": "/a", "dropbox_path": "x", "disabled": "yes"},
            }
        )

        with pytest.raises(ConfigError):
            config.resolve_app("bad_path", "host", tmp_path)
        with pytest.raises(ConfigError):
            config.resolve_app("bad_disabled", "host", tmp_path)

    def test_unknown_app(self, tmp_path):
        with pytest.raises(ConfigError):
            make_config({}).resolve_app("nope", "host", tmp_path)

    def test_play_path_joined_onto_play_root(self, tmp_path):
        config = make_config(
            {
                "game": {
                    "path": "/saves",
                    "dropbox_path": "game",
                    "play_root_path": "/games/game",
                    "play_path": "bin/game.exe",
                }
            }
        )

        entry = config.resolve_app("game", "host", tmp_path)

        assert entry.play_root_path == Path("/games/game")
        assert entry.play_path == Path("/games/game/bin/game.exe")

    def test_play_path_without_root(self, tmp_path):
        config = make_config(
            {"game": {"path": "/saves", "dropbox_path": "game", "play_path": "/opt/game"}}
        )

        entry = config.resolve_app("game", "host", tmp_path)

        assert entry.play_path == Path("/opt/game")
        assert entry.play_root_path is None

    def test_app_entries_sorted_and_filtered(self, tmp_path):
        config = make_config(
            {
                "zeta": {"path": "/z", "dropbox_path": "z"},
                "alpha": {"path": "/a", "dropbox_path": "a"},
                "off": {"path": "/o", "dropbox_path": "o", "disabled": True},
                "broken": {"path": "/b"},
            }
        )

        entries, errors = config.app_entries("host", tmp_path)

        assert [entry.name for entry in entries] == ["alpha", "zeta"]
        assert [name for name, _ in errors] == ["broken"]
        assert isinstance(errors[0][1], ConfigError)

    def test_app_entries_include_disabled(self, tmp_path):
        config = make_config({"off": {"path": "/o", "dropbox_path": "o", "disabled": True}})

        entries, _ = config.app_entries("host", tmp_path, include_disabled=True)

        assert [entry.name for entry in entries] == ["off"]


class TestAppEntry:
    """AppEntry tests."""

    def test_validate_passes_for_existing_roots(self, temp_dirs):
        left, right = temp_dirs
        AppEntry("app", left, right).validate()

    def test_validate_missing_root(self, temp_dirs):
        left, right = temp_dirs
        with pytest.raises(ConfigError, match="dropbox_path"):
            AppEntry("app", left, right / "missing").validate()


class TestLoading:
    """File and sync-root loading tests."""

    def test_load_config_from_sync_root(self, sync_root):
        config = load_config_from_sync_root(sync_root)

        assert config.app_names == ["alpha", "beta", "gamma"]
        assert config.log_level == "DEBUG"

    def test_load_config_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_load_config_invalid_yaml(self, tmp_path):
        path = tmp_path / "dropsync.yaml"
        path.write_text("apps: [unclosed")

        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / "dropsync.yaml"
        path.write_text("")

        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_get_sync_root_override(self, tmp_path):
        assert get_sync_root(str(tmp_path)) == tmp_path

    def test_get_sync_root_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DROPSYNC_ROOT", str(tmp_path))
        assert get_sync_root() == tmp_path

    def test_get_sync_root_default_is_home_dropbox(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DROPSYNC_ROOT", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        (tmp_path / "Dropbox").mkdir()

        assert get_sync_root() == tmp_path / "Dropbox"

    def test_get_sync_root_missing(self, tmp_path):
        with pytest.raises(ConfigError):
            get_sync_root(str(tmp_path / "missing"))

    def test_sample_host_override(self, sync_root):
        config = load_config_from_sync_root(sync_root)

        entries, errors = config.app_entries("my_laptop", sync_root)

        assert errors == []
        assert [entry.name for entry in entries] == ["alpha", "beta"]
        assert entries[0].local_path == Path("D:/alpha/saves")
        assert entries[1].include_only == "*.sv"
