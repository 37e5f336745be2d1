"""领域协议定义

集中定义注册表、执行计划与外部协作方之间的接口契约（Protocol）。
使用 typing.Protocol 而非 ABC，使得外部实现无需继承即可满足协议。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from vaultpkg.core.plan.models import ImportOptions
    from vaultpkg.core.registry.base import RegisteredPackage


# =========================================================================
# 内容提取协作方
# =========================================================================

class ContentExtractor(Protocol):
    """内容提取协作方

    负责把包内容写入目标仓库 / 从目标仓库移除，由执行计划调用。
    失败时直接抛出异常，由执行计划记录为任务 ERROR。
    """

    def extract(self, package: RegisteredPackage, options: ImportOptions | None) -> None:
        """提取包内容（不处理安装钩子、快照等完整安装语义）"""
        ...

    def uninstall(self, package: RegisteredPackage, options: ImportOptions | None) -> None:
        """移除包内容"""
        ...


@runtime_checkable
class FullInstaller(Protocol):
    """支持完整安装的提取器（可选能力）"""

    def install(self, package: RegisteredPackage, options: ImportOptions | None) -> None:
        ...
