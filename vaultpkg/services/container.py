"""服务容器：统一构造注册表与内容提取器

同一容器内的实例共享状态；CLI 通过 get_container() 获取，而非直接构造。

依赖关系（→ 表示依赖）:
  registry → extractor

Config 注入:
  容器接受可选 Config 参数；不提供时使用全局 get_config()。

用法:
    container = ServiceContainer()
    registry = container.registry          # 懒加载
    builder = container.plan_builder()     # 每次新建，已带上外部包配置
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vaultpkg.core.config import Config
    from vaultpkg.core.extractor import FileSystemExtractor
    from vaultpkg.core.plan.builder import ExecutionPlanBuilder
    from vaultpkg.core.registry.fs_registry import FSPackageRegistry

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from vaultpkg.core.config import get_config
            config = get_config()
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    @property
    def extractor(self) -> FileSystemExtractor:
        if "extractor" not in self._instances:
            from vaultpkg.core.extractor import FileSystemExtractor
            self._instances["extractor"] = FileSystemExtractor(self._config.content_root)
        return self._instances["extractor"]  # type: ignore[return-value]

    @property
    def registry(self) -> FSPackageRegistry:
        if "registry" not in self._instances:
            from vaultpkg.core.registry.fs_registry import FSPackageRegistry
            self._instances["registry"] = FSPackageRegistry(
                self._config.registry_home, extractor=self.extractor,
            )
            logger.debug("注册表目录: %s", self._config.registry_home)
        return self._instances["registry"]  # type: ignore[return-value]

    def plan_builder(self) -> ExecutionPlanBuilder:
        """新建执行计划构建器，外部包取自配置 external_packages"""
        from vaultpkg.core.dep.models import PackageId
        builder = self.registry.create_execution_plan()
        external = [PackageId.from_string(s) for s in self._config.external_packages]
        return builder.with_external_packages(p for p in external if p is not None)


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
