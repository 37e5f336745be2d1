"""集中配置管理

注册表目录、内容提取目录等统一从这里获取，
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

from vaultpkg.core.exceptions import ConfigError
from vaultpkg.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "configs/vaultpkg.yml"


@dataclass
class Config:
    """全局配置"""

    # 目录
    registry_home: str = "data/packages"
    content_root: str = "data/content"
    plan_dir: str = "data/plans"

    # 外部提供、视为已满足的依赖（PackageId 字符串）
    external_packages: list[str] = field(default_factory=list)

    # 放不到字段里的配置项
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        ext = matched.get("external_packages", [])
        if not isinstance(ext, list):
            raise ConfigError(f"{path}: external_packages 必须是列表")
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.debug("配置已加载: %s", path)
    return _current
