"""文件系统内容提取器

默认的 ContentExtractor 实现：把包内 jcr_root/ 下的内容文件
写入 target_root 目录，仓库路径 /apps/x/a.txt 对应 target_root/apps/x/a.txt。

职责:
- extract: 按过滤器写入内容文件（选项中的过滤器优先于包自带的过滤器）
- uninstall: 删除包写入的文件并清理空目录
- 不支持完整安装（没有 install 方法）
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from vaultpkg.core.archive import SUB_PACKAGE_ROOT
from vaultpkg.core.exceptions import PackageError
from vaultpkg.utils.yaml_io import atomic_write

if TYPE_CHECKING:
    from vaultpkg.core.filter import WorkspaceFilter
    from vaultpkg.core.plan.models import ImportOptions
    from vaultpkg.core.registry.base import RegisteredPackage

logger = logging.getLogger(__name__)


class FileSystemExtractor:
    """把包内容提取到本地目录"""

    def __init__(self, target_root: str | Path) -> None:
        self.target_root = Path(target_root)

    def extract(self, package: RegisteredPackage, options: ImportOptions | None) -> None:
        archive = package.archive()
        dry_run = options is not None and options.is_dry_run
        written = 0
        for repo_path in self._selected_paths(package, options):
            dest = self._target_of(repo_path)
            if dry_run:
                logger.info("[dry-run] 提取 %s -> %s", repo_path, dest)
                continue
            atomic_write(dest, archive.read_content(repo_path))
            written += 1
        logger.info(
            "已提取 %s: %d 个文件 -> %s", package.id, written, self.target_root,
            extra={"package_id": package.id},
        )

    def uninstall(self, package: RegisteredPackage, options: ImportOptions | None) -> None:
        dry_run = options is not None and options.is_dry_run
        removed = 0
        for repo_path in self._selected_paths(package, options):
            dest = self._target_of(repo_path)
            if not dest.exists():
                continue
            if dry_run:
                logger.info("[dry-run] 删除 %s", dest)
                continue
            dest.unlink()
            removed += 1
            self._prune_empty_dirs(dest.parent)
        logger.info(
            "已卸载 %s: 删除 %d 个文件", package.id, removed,
            extra={"package_id": package.id},
        )

    # ---- 内部 ----

    def _selected_paths(
        self, package: RegisteredPackage, options: ImportOptions | None,
    ) -> list[str]:
        ws: WorkspaceFilter | None = None
        if options is not None and options.filter is not None:
            ws = options.filter
        elif package.filter:
            ws = package.filter
        paths = []
        for repo_path in package.archive().content_paths:
            # 子包由注册表单独处理
            if repo_path.startswith(SUB_PACKAGE_ROOT) and repo_path.endswith(".zip"):
                continue
            if ws is not None and not ws.contains(repo_path):
                continue
            paths.append(repo_path)
        return paths

    def _target_of(self, repo_path: str) -> Path:
        root = self.target_root.resolve()
        dest = (root / repo_path.lstrip("/")).resolve()
        if root != dest and root not in dest.parents:
            raise PackageError(f"内容路径越界: {repo_path}")
        return dest

    def _prune_empty_dirs(self, directory: Path) -> None:
        root = self.target_root.resolve()
        current = directory
        while current != root and root in current.parents:
            try:
                current.rmdir()
            except OSError:
                break
            current = current.parent
