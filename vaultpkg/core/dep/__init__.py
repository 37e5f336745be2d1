"""包标识、依赖声明与依赖图

拆分说明:
- version.py: Version / VersionRange
- models.py: PackageId / Dependency 与依赖列表工具
- subpackage.py: 子包处理策略
- resolver.py: 安装顺序求解与环检测
"""

from vaultpkg.core.dep.models import (
    Dependency,
    PackageId,
    add,
    add_exact,
    matches_any,
)
from vaultpkg.core.dep.resolver import resolve_order, sort_packages
from vaultpkg.core.dep.subpackage import SubPackageHandling, SubPackageOption
from vaultpkg.core.dep.version import Version, VersionRange

__all__ = [
    "Version",
    "VersionRange",
    "PackageId",
    "Dependency",
    "matches_any",
    "add_exact",
    "add",
    "SubPackageHandling",
    "SubPackageOption",
    "resolve_order",
    "sort_packages",
]
