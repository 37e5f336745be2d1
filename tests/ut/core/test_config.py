"""配置、YAML 读写与日志配置测试"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import yaml

import vaultpkg.core.config as cfgmod
import vaultpkg.utils.yaml_io as yaml_io
from vaultpkg.core.config import Config, get_config, init_config
from vaultpkg.core.exceptions import ConfigError, VaultPackageError
from vaultpkg.utils.logger import JSONFormatter, reset_logging, setup_logging

# =========================================================================
# config.py
# =========================================================================


class TestConfig:
    def test_defaults_when_missing(self, tmp_path: Path) -> None:
        cfg = Config.from_file(str(tmp_path / "none.yml"))
        assert cfg == Config()
        assert cfg.registry_home == "data/packages"

    def test_load_with_extra(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yml"
        path.write_text(
            "registry_home: /srv/pkgs\n"
            "external_packages: ['g:ext:1.0']\n"
            "custom_key: 42\n",
            encoding="utf-8",
        )
        cfg = Config.from_file(str(path))
        assert cfg.registry_home == "/srv/pkgs"
        assert cfg.external_packages == ["g:ext:1.0"]
        assert cfg.extra == {"custom_key": 42}
        assert cfg.to_dict()["registry_home"] == "/srv/pkgs"

    def test_external_packages_must_be_list(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg.yml"
        path.write_text("external_packages: g:ext:1.0\n", encoding="utf-8")
        with pytest.raises(ConfigError) as exc:
            Config.from_file(str(path))
        assert isinstance(exc.value, VaultPackageError)
        assert exc.value.code == "CONFIG_ERROR"

    def test_init_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cfgmod, "_current", None)
        path = tmp_path / "cfg.yml"
        path.write_text("content_root: /tmp/out\n", encoding="utf-8")
        cfg = init_config(str(path))
        assert get_config() is cfg
        assert cfg.content_root == "/tmp/out"

    def test_get_config_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cfgmod, "_current", None)
        assert get_config() == Config()


# =========================================================================
# yaml_io.py
# =========================================================================


class TestYamlIO:
    def test_save_and_load(self, tmp_path: Path) -> None:
        path = tmp_path / "sub" / "data.yml"
        yaml_io.save_yaml(path, {"b": 1, "a": ["x", "中文"]})
        assert yaml_io.load_yaml(path) == {"b": 1, "a": ["x", "中文"]}
        assert path.read_text(encoding="utf-8").startswith("b: 1")

    def test_missing_and_empty(self, tmp_path: Path) -> None:
        assert yaml_io.load_yaml(tmp_path / "none.yml") == {}
        empty = tmp_path / "empty.yml"
        empty.write_text("", encoding="utf-8")
        assert yaml_io.load_yaml(empty) == {}

    def test_non_dict(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        assert yaml_io.load_yaml(path) == {}

    def test_syntax_error(self) -> None:
        with pytest.raises(yaml.YAMLError):
            yaml_io.parse_yaml("a: [1, 2")

    def test_size_limit(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "big.yml"
        path.write_text("key: " + "x" * 100 + "\n", encoding="utf-8")
        monkeypatch.setattr(yaml_io, "MAX_YAML_SIZE", 10)
        with pytest.raises(ValueError):
            yaml_io.load_yaml(path)

    def test_atomic_write_leaves_no_temp(self, tmp_path: Path) -> None:
        path = tmp_path / "deep" / "f.bin"
        yaml_io.atomic_write(path, b"\x00data")
        yaml_io.atomic_write(path, "text")
        assert path.read_text(encoding="utf-8") == "text"
        assert [p.name for p in path.parent.iterdir()] == ["f.bin"]


# =========================================================================
# logger.py
# =========================================================================


class TestLogger:
    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        saved_handlers = root.handlers[:]
        saved_level = root.level
        yield
        reset_logging()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

    def test_setup_replaces_handlers(self) -> None:
        setup_logging("DEBUG")
        setup_logging("WARNING")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING

    def test_unknown_level_falls_back(self) -> None:
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.INFO

    def test_json_formatter_context(self) -> None:
        record = logging.LogRecord("vaultpkg.x", logging.INFO, __file__, 1, "已注册 %s", ("包",), None)
        record.package_id = "g:a:1.0"
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "已注册 包"
        assert entry["package_id"] == "g:a:1.0"
        assert entry["level"] == "INFO"
        assert "task_type" not in entry
