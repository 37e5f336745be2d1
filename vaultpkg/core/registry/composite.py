"""组合注册表

把多个子注册表组合成一个视图:
- 读操作（packages / resolve / usage / open）合并所有子注册表
- 写操作（register / register_external）落到第一个（主）注册表
- remove / 安装 / 卸载由持有该标识的子注册表执行

约束: 同一标识不能同时存在于多个子注册表中。
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import IO, Sequence

from vaultpkg.core.archive import PackageArchive
from vaultpkg.core.dep.models import Dependency, PackageId
from vaultpkg.core.exceptions import (
    NoSuchPackageError,
    PackageExistsError,
    RegistryConflictError,
)
from vaultpkg.core.plan.models import ImportOptions
from vaultpkg.core.registry.base import AbstractPackageRegistry, RegisteredPackage

logger = logging.getLogger(__name__)


class CompositePackageRegistry(AbstractPackageRegistry):
    """多个注册表的组合视图，第一个为主注册表"""

    def __init__(self, registries: Sequence[AbstractPackageRegistry]) -> None:
        if not registries:
            raise ValueError("组合注册表至少需要一个子注册表")
        self.registries = list(registries)
        seen: dict[PackageId, int] = {}
        for idx, reg in enumerate(self.registries):
            for pid in reg.packages():
                if pid in seen:
                    raise RegistryConflictError(
                        f"包 {pid} 同时存在于子注册表 #{seen[pid]} 和 #{idx}"
                    )
                seen[pid] = idx

    @property
    def primary(self) -> AbstractPackageRegistry:
        return self.registries[0]

    def _owner(self, package_id: PackageId) -> AbstractPackageRegistry | None:
        for reg in self.registries:
            if reg.contains(package_id):
                return reg
        return None

    def _require_owner(self, package_id: PackageId) -> AbstractPackageRegistry:
        reg = self._owner(package_id)
        if reg is None:
            raise NoSuchPackageError(package_id)
        return reg

    # ---- 查询 ----

    def packages(self) -> set[PackageId]:
        result: set[PackageId] = set()
        for reg in self.registries:
            result |= reg.packages()
        return result

    def contains(self, package_id: PackageId) -> bool:
        return self._owner(package_id) is not None

    def open(self, package_id: PackageId) -> RegisteredPackage | None:
        for reg in self.registries:
            pkg = reg.open(package_id)
            if pkg is not None:
                return pkg
        return None

    def resolve(self, dependency: Dependency, only_installed: bool = False) -> PackageId | None:
        """按子注册表顺序返回第一个解析结果"""
        for reg in self.registries:
            pid = reg.resolve(dependency, only_installed)
            if pid is not None:
                return pid
        return None

    def usage(self, package_id: PackageId) -> list[PackageId]:
        users: set[PackageId] = set()
        for reg in self.registries:
            users.update(reg.usage(package_id))
        return sorted(users)

    # ---- 写入 ----

    def register(self, source: str | Path | IO[bytes], replace: bool = False) -> PackageId:
        if isinstance(source, (str, Path)):
            archive = PackageArchive.open(source)
        else:
            data = source.read()
            archive = PackageArchive.from_bytes(data)
            source = io.BytesIO(data)
        self._check_secondaries(archive.package_id)
        return self.primary.register(source, replace)

    def register_external(self, path: str | Path, replace: bool = False) -> PackageId:
        self._check_secondaries(PackageArchive.open(path).package_id)
        return self.primary.register_external(path, replace)

    def _check_secondaries(self, package_id: PackageId) -> None:
        """写入主注册表前确认其他子注册表没有该标识"""
        for reg in self.registries[1:]:
            if reg.contains(package_id):
                raise PackageExistsError(package_id, f"包已存在于其他注册表: {package_id}")

    def remove(self, package_id: PackageId) -> None:
        self._require_owner(package_id).remove(package_id)

    def install_package(
        self, package_id: PackageId, options: ImportOptions | None = None,
        extract: bool = True,
    ) -> None:
        self._require_owner(package_id).install_package(package_id, options, extract)

    def uninstall_package(
        self, package_id: PackageId, options: ImportOptions | None = None,
    ) -> None:
        self._require_owner(package_id).uninstall_package(package_id, options)
