"""注册表基类

职责:
- RegisteredPackage: 已注册包的只读视图（状态 + 懒加载的包文件）
- DependencyReport: analyze_dependencies 的结果
- AbstractPackageRegistry: 基于 packages()/open() 实现的依赖查询
  （resolve / usage / analyze_dependencies），具体存储由子类实现
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, TYPE_CHECKING

from vaultpkg.core.archive import PackageArchive
from vaultpkg.core.dep.models import Dependency, PackageId
from vaultpkg.core.dep.subpackage import SubPackageOption
from vaultpkg.core.exceptions import NoSuchPackageError
from vaultpkg.core.registry.install_state import InstallState, PackageStatus

if TYPE_CHECKING:
    from vaultpkg.core.filter import WorkspaceFilter
    from vaultpkg.core.plan.builder import ExecutionPlanBuilder
    from vaultpkg.core.plan.models import ImportOptions

logger = logging.getLogger(__name__)


@dataclass
class DependencyReport:
    """依赖分析结果：已可解析的标识 + 无法解析的依赖声明"""

    package_id: PackageId
    resolved: list[PackageId] = field(default_factory=list)
    unresolved: list[Dependency] = field(default_factory=list)

    @property
    def is_satisfied(self) -> bool:
        return not self.unresolved


class RegisteredPackage:
    """已注册的包

    状态来自打开时读取的元数据；包文件在首次访问 archive() 时才解析。
    支持 with 语句。
    """

    def __init__(self, state: InstallState, file: Path) -> None:
        self._state = state
        self._file = file
        self._archive: PackageArchive | None = None

    @property
    def id(self) -> PackageId:
        return self._state.package_id

    @property
    def state(self) -> InstallState:
        return self._state

    @property
    def status(self) -> PackageStatus:
        return self._state.status

    @property
    def is_installed(self) -> bool:
        return self._state.is_installed

    @property
    def install_time(self) -> int | None:
        return self._state.install_time

    @property
    def size(self) -> int:
        return self._state.size

    @property
    def external(self) -> bool:
        return self._state.external

    @property
    def file_path(self) -> Path:
        return self._file

    @property
    def dependencies(self) -> list[Dependency]:
        return sorted(self._state.dependencies, key=str)

    @property
    def sub_packages(self) -> dict[PackageId, SubPackageOption]:
        return dict(self._state.sub_packages)

    @property
    def filter(self) -> WorkspaceFilter | None:
        return self._state.filter

    @property
    def properties(self) -> dict[str, str]:
        return dict(self._state.properties)

    def archive(self) -> PackageArchive:
        if self._archive is None:
            self._archive = PackageArchive.open(self._file)
        return self._archive

    def close(self) -> None:
        self._archive = None

    def __enter__(self) -> RegisteredPackage:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RegisteredPackage({self.id}, {self.status.value})"


class AbstractPackageRegistry(ABC):
    """注册表公共实现

    读操作都基于调用时的持久化状态；子类实现存储相关的方法。
    """

    # ---- 存储相关（子类实现） ----

    @abstractmethod
    def packages(self) -> set[PackageId]:
        ...

    @abstractmethod
    def open(self, package_id: PackageId) -> RegisteredPackage | None:
        ...

    @abstractmethod
    def register(self, source: str | Path | IO[bytes], replace: bool = False) -> PackageId:
        ...

    @abstractmethod
    def register_external(self, path: str | Path, replace: bool = False) -> PackageId:
        ...

    @abstractmethod
    def remove(self, package_id: PackageId) -> None:
        ...

    @abstractmethod
    def install_package(
        self, package_id: PackageId, options: ImportOptions | None = None,
        extract: bool = True,
    ) -> None:
        ...

    @abstractmethod
    def uninstall_package(
        self, package_id: PackageId, options: ImportOptions | None = None,
    ) -> None:
        ...

    # ---- 查询 ----

    def contains(self, package_id: PackageId) -> bool:
        return self.open(package_id) is not None

    def is_installed(self, package_id: PackageId) -> bool:
        pkg = self.open(package_id)
        return pkg is not None and pkg.is_installed

    def resolve(self, dependency: Dependency, only_installed: bool = False) -> PackageId | None:
        """返回满足依赖的最高版本标识，没有则返回 None"""
        best: PackageId | None = None
        for pid in sorted(self.packages()):
            if not dependency.matches(pid):
                continue
            if only_installed and not self.is_installed(pid):
                continue
            if best is None or pid.version.compare(best.version) > 0:
                best = pid
        return best

    def usage(self, package_id: PackageId) -> list[PackageId]:
        """返回声明了依赖 package_id 的所有已注册包（按标识排序）"""
        users = []
        for pid in self.packages():
            pkg = self.open(pid)
            if pkg is None:
                continue
            if any(dep.matches(package_id) for dep in pkg.dependencies):
                users.append(pid)
        return sorted(users)

    def analyze_dependencies(
        self, package_id: PackageId, only_installed: bool = False,
    ) -> DependencyReport:
        """把包声明的依赖划分为可解析 / 不可解析两部分

        异常:
            NoSuchPackageError: 包未注册
        """
        pkg = self.open(package_id)
        if pkg is None:
            raise NoSuchPackageError(package_id)
        report = DependencyReport(package_id)
        for dep in pkg.dependencies:
            resolved = self.resolve(dep, only_installed)
            if resolved is None:
                report.unresolved.append(dep)
            else:
                report.resolved.append(resolved)
        return report

    def create_execution_plan(self) -> ExecutionPlanBuilder:
        from vaultpkg.core.plan.builder import ExecutionPlanBuilder
        return ExecutionPlanBuilder(self)
