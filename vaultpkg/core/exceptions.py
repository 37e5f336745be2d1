"""统一异常体系

所有业务异常继承 VaultPackageError，并带有稳定的 code，
CLI 层据此输出友好提示。字符串解析（版本、标识、依赖）是宽松的，不在此列。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from vaultpkg.core.dep.models import Dependency, PackageId


class VaultPackageError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(VaultPackageError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class CyclicDependencyError(VaultPackageError):
    """依赖图存在环，无法给出安装顺序"""

    code = "CYCLIC_DEPENDENCY"


class PackageExistsError(VaultPackageError):
    """注册时标识冲突（未指定 replace）"""

    code = "PACKAGE_EXISTS"

    def __init__(self, package_id: PackageId, message: str | None = None) -> None:
        super().__init__(message or f"包已存在: {package_id}")
        self.package_id = package_id


class NoSuchPackageError(VaultPackageError):
    """操作的包未注册"""

    code = "NO_SUCH_PACKAGE"

    def __init__(self, package_id: PackageId, message: str | None = None) -> None:
        super().__init__(message or f"包未注册: {package_id}")
        self.package_id = package_id


class DependencyUnsatisfiedError(VaultPackageError):
    """执行计划校验失败：存在未满足的依赖"""

    code = "DEPENDENCY_UNSATISFIED"

    def __init__(
        self, package_id: PackageId, unresolved: Iterable[Dependency],
    ) -> None:
        self.package_id = package_id
        self.unresolved = list(unresolved)
        deps = ", ".join(str(d) for d in self.unresolved)
        super().__init__(f"{package_id} 存在未满足的依赖: {deps}")


class PackageError(VaultPackageError):
    """包文件无法读取，或操作不被当前包/提取器支持"""

    code = "PACKAGE_ERROR"


class RegistryStateError(VaultPackageError):
    """注册表元数据文件损坏或无法解析"""

    code = "REGISTRY_STATE_ERROR"


class RegistryConflictError(VaultPackageError):
    """组合注册表中同一标识出现在多个子注册表"""

    code = "REGISTRY_CONFLICT"


class PlanFormatError(VaultPackageError):
    """执行计划文件格式错误或版本不受支持"""

    code = "PLAN_FORMAT_ERROR"
