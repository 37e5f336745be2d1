"""包注册表

拆分说明:
- install_state.py: 单个包的持久化状态（XML）
- state_cache.py: 以标识为键、对照磁盘校验的状态缓存
- base.py: RegisteredPackage / DependencyReport / 依赖查询公共实现
- fs_registry.py: 文件系统注册表
- composite.py: 多注册表组合视图
"""

from vaultpkg.core.registry.base import (
    AbstractPackageRegistry,
    DependencyReport,
    RegisteredPackage,
)
from vaultpkg.core.registry.composite import CompositePackageRegistry
from vaultpkg.core.registry.fs_registry import FSPackageRegistry
from vaultpkg.core.registry.install_state import InstallState, PackageStatus
from vaultpkg.core.registry.state_cache import InstallStateCache

__all__ = [
    "AbstractPackageRegistry",
    "CompositePackageRegistry",
    "DependencyReport",
    "FSPackageRegistry",
    "InstallState",
    "InstallStateCache",
    "PackageStatus",
    "RegisteredPackage",
]
