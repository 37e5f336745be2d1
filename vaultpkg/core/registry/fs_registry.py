"""文件系统注册表

每个包在 home 目录下对应一份元数据 XML（以及注册表自有的包文件），
元数据是唯一事实来源：新建的注册表实例能直接看到之前持久化的所有包。

并发模型: 单写多读。register / remove / 状态更新在实例级 RLock 内串行执行；
写入时先放包文件再写元数据，删除时先删元数据再删包文件，
替换时新元数据原子覆盖旧元数据，
读者不会看到有元数据但没有内容的包。
"""

from __future__ import annotations

import io
import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import IO

from vaultpkg.core.archive import PackageArchive
from vaultpkg.core.dep.models import PackageId
from vaultpkg.core.dep.subpackage import SubPackageOption
from vaultpkg.core.exceptions import (
    NoSuchPackageError,
    PackageError,
    PackageExistsError,
)
from vaultpkg.core.plan.models import ImportOptions
from vaultpkg.core.protocols import ContentExtractor, FullInstaller
from vaultpkg.core.registry.base import AbstractPackageRegistry, RegisteredPackage
from vaultpkg.core.registry.install_state import InstallState, PackageStatus
from vaultpkg.core.registry.state_cache import InstallStateCache

logger = logging.getLogger(__name__)

_UPLOAD_SUFFIX = ".upload.tmp"


class FSPackageRegistry(AbstractPackageRegistry):
    """基于本地目录的包注册表"""

    def __init__(
        self,
        home_dir: str | Path,
        extractor: ContentExtractor | None = None,
    ) -> None:
        self.home_dir = Path(home_dir)
        self.home_dir.mkdir(parents=True, exist_ok=True)
        self.extractor = extractor
        self.state_cache = InstallStateCache(self.home_dir)
        self._write_lock = threading.RLock()

    # ---- 查询 ----

    def packages(self) -> set[PackageId]:
        return {s.package_id for s in self.state_cache.list_states()}

    def contains(self, package_id: PackageId) -> bool:
        return self.state_cache.get(package_id) is not None

    def open(self, package_id: PackageId) -> RegisteredPackage | None:
        state = self.state_cache.get(package_id)
        if state is None:
            return None
        return RegisteredPackage(state, self._file_of(state))

    def _file_of(self, state: InstallState) -> Path:
        p = Path(state.file_path)
        return p if p.is_absolute() else self.home_dir / p

    # ---- 注册 ----

    def register(self, source: str | Path | IO[bytes], replace: bool = False) -> PackageId:
        """复制包文件到注册表存储并登记

        异常:
            PackageExistsError: 标识已注册且 replace=False（不做任何修改）
            PackageError: 不是合法的内容包
        """
        fd, tmp_name = tempfile.mkstemp(dir=str(self.home_dir), suffix=_UPLOAD_SUFFIX)
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                if isinstance(source, (str, Path)):
                    with open(source, "rb") as src:
                        shutil.copyfileobj(src, out)
                else:
                    shutil.copyfileobj(source, out)
            archive = PackageArchive.open(tmp)
            pid = archive.package_id
            with self._write_lock:
                existing = self._check_replace(pid, replace)
                dest = self.state_cache.package_path(pid)
                dest.parent.mkdir(parents=True, exist_ok=True)
                os.replace(tmp, dest)
                state = self._new_state(archive, dest.relative_to(self.home_dir).as_posix(), dest)
                self.state_cache.put(state)
                self._drop_replaced(existing, dest)
        finally:
            tmp.unlink(missing_ok=True)
        logger.info("已注册包: %s", pid, extra={"package_id": pid})
        return pid

    def register_external(self, path: str | Path, replace: bool = False) -> PackageId:
        """登记外部包文件：只记录绝对路径，不复制，删除时也不删除文件

        异常:
            PackageExistsError: 标识已注册且 replace=False
            PackageError: 不是合法的内容包
        """
        file = Path(path).resolve()
        archive = PackageArchive.open(file)
        pid = archive.package_id
        with self._write_lock:
            existing = self._check_replace(pid, replace)
            state = self._new_state(archive, str(file), file)
            state.external = True
            self.state_cache.put(state)
            self._drop_replaced(existing, file)
        logger.info("已登记外部包: %s -> %s", pid, file, extra={"package_id": pid})
        return pid

    def _check_replace(self, package_id: PackageId, replace: bool) -> InstallState | None:
        """返回被替换的旧状态；旧元数据保留到新元数据写入时被原子覆盖"""
        existing = self.state_cache.get(package_id)
        if existing is None:
            return None
        if not replace:
            raise PackageExistsError(package_id)
        logger.info("替换已注册的包: %s", package_id)
        return existing

    def _drop_replaced(self, existing: InstallState | None, current: Path) -> None:
        if existing is None or existing.external:
            return
        old = self._file_of(existing)
        if old != current:
            old.unlink(missing_ok=True)

    @staticmethod
    def _new_state(archive: PackageArchive, file_path: str, file: Path) -> InstallState:
        handling = archive.sub_package_handling
        return InstallState(
            package_id=archive.package_id,
            status=PackageStatus.REGISTERED,
            file_path=file_path,
            dependencies=set(archive.dependencies),
            sub_packages={
                sub.package_id: handling.get_option(sub.package_id)
                for sub in archive.sub_packages
            },
            size=file.stat().st_size,
            filter=archive.filter,
            properties=dict(archive.properties),
        )

    # ---- 删除 ----

    def remove(self, package_id: PackageId) -> None:
        """删除包登记与注册表自有的包文件（外部文件保留）

        异常:
            NoSuchPackageError: 包未注册
        """
        with self._write_lock:
            state = self.state_cache.get(package_id)
            if state is None:
                raise NoSuchPackageError(package_id)
            self.state_cache.remove(package_id)
            if not state.external:
                self._file_of(state).unlink(missing_ok=True)
        logger.info("已删除包: %s", package_id, extra={"package_id": package_id})

    # ---- 安装 / 卸载 ----

    def install_package(
        self, package_id: PackageId, options: ImportOptions | None = None,
        extract: bool = True,
    ) -> None:
        """通过内容提取器安装（extract=False）或提取（extract=True）包

        成功后状态变为 EXTRACTED 并记录安装时间；dry-run 不更新状态。
        非 non_recursive 时按子包处理策略依次处理内嵌子包。

        异常:
            NoSuchPackageError: 包未注册
            PackageError: 未配置提取器，或提取器不支持完整安装
        """
        pkg = self.open(package_id)
        if pkg is None:
            raise NoSuchPackageError(package_id)
        extractor = self._require_extractor()
        with pkg:
            if extract:
                extractor.extract(pkg, options)
            elif isinstance(extractor, FullInstaller):
                extractor.install(pkg, options)
            else:
                raise PackageError(
                    f"提取器 {type(extractor).__name__} 不支持完整安装，"
                    f"只能提取: {package_id}"
                )
            if options is not None and options.is_dry_run:
                logger.info("[dry-run] 跳过状态更新: %s", package_id)
                return
            if not (options is not None and options.non_recursive):
                self._process_sub_packages(pkg, options, extract)
        with self._write_lock:
            self.state_cache.update_status(package_id, PackageStatus.EXTRACTED)
        logger.info(
            "已%s包: %s", "提取" if extract else "安装", package_id,
            extra={"package_id": package_id},
        )

    def _process_sub_packages(
        self, pkg: RegisteredPackage, options: ImportOptions | None, extract: bool,
    ) -> None:
        override = options.sub_package_handling if options is not None else None
        archive = pkg.archive()
        for embedded in archive.sub_packages:
            sid = embedded.package_id
            if override is not None:
                option = override.get_option(sid)
            else:
                option = pkg.sub_packages.get(sid, SubPackageOption.INSTALL)
            if option is SubPackageOption.IGNORE:
                logger.info("忽略子包: %s", sid)
                continue
            if not self.contains(sid):
                self.register(io.BytesIO(archive.read_entry(embedded.entry)))
            if option is SubPackageOption.ADD:
                continue
            self.install_package(
                sid, options, extract=extract or option is SubPackageOption.EXTRACT,
            )

    def uninstall_package(
        self, package_id: PackageId, options: ImportOptions | None = None,
    ) -> None:
        """移除包内容，状态回到 REGISTERED（保留上次安装时间）"""
        pkg = self.open(package_id)
        if pkg is None:
            raise NoSuchPackageError(package_id)
        extractor = self._require_extractor()
        with pkg:
            extractor.uninstall(pkg, options)
        if options is not None and options.is_dry_run:
            return
        with self._write_lock:
            self.state_cache.update_status(package_id, PackageStatus.REGISTERED)
        logger.info("已卸载包: %s", package_id, extra={"package_id": package_id})

    def _require_extractor(self) -> ContentExtractor:
        if self.extractor is None:
            raise PackageError("注册表未配置内容提取器")
        return self.extractor
