"""安装状态缓存

以标识为键缓存 InstallState，磁盘上的元数据文件是唯一事实来源:
- 每次读取都会 stat 对应的元数据文件，文件变化（inode/mtime/size）或消失时重新加载
- list_states 每次重新扫描 home 目录下的 *.xml，其他实例写入的包也能看到
- put / remove 立即落盘

存储布局（相对 home）:
    <group>/<name>-<version>.xml   元数据
    <group>/<name>-<version>.zip   包文件（外部注册的包没有）
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from pathlib import Path

from vaultpkg.core.dep.models import PackageId
from vaultpkg.core.exceptions import RegistryStateError
from vaultpkg.core.registry.install_state import InstallState, PackageStatus

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".xml"
PACKAGE_SUFFIX = ".zip"

_Stamp = tuple[int, int, int]


def _stamp(path: Path) -> _Stamp | None:
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    return st.st_ino, st.st_mtime_ns, st.st_size


class InstallStateCache:
    """按标识缓存的安装状态，读取时对照磁盘校验"""

    def __init__(self, home_dir: str | Path) -> None:
        self.home_dir = Path(home_dir)
        self._lock = threading.Lock()
        # 元数据文件路径 -> (文件戳, 状态)
        self._entries: dict[Path, tuple[_Stamp, InstallState]] = {}

    # ---- 路径 ----

    def metadata_path(self, package_id: PackageId) -> Path:
        return self.home_dir / (package_id.relative_installation_path + METADATA_SUFFIX)

    def package_path(self, package_id: PackageId) -> Path:
        return self.home_dir / (package_id.relative_installation_path + PACKAGE_SUFFIX)

    # ---- 读取 ----

    def get(self, package_id: PackageId) -> InstallState | None:
        """读取包状态；元数据文件不存在或属于其他标识时返回 None"""
        state = self._load(self.metadata_path(package_id))
        if state is None or state.package_id != package_id:
            return None
        return state

    def list_states(self) -> list[InstallState]:
        """扫描 home 目录，返回所有包状态（按标识排序）"""
        if not self.home_dir.exists():
            return []
        found = {p.resolve() for p in self.home_dir.rglob("*" + METADATA_SUFFIX) if p.is_file()}
        with self._lock:
            for stale in set(self._entries) - found:
                del self._entries[stale]
        states: dict[PackageId, InstallState] = {}
        for path in sorted(found):
            try:
                state = self._load(path)
            except RegistryStateError as e:
                logger.warning("跳过损坏的元数据文件 %s: %s", path, e)
                continue
            if state is not None:
                states.setdefault(state.package_id, state)
        return [states[pid] for pid in sorted(states)]

    def _load(self, path: Path) -> InstallState | None:
        key = path.resolve()
        stamp = _stamp(key)
        with self._lock:
            if stamp is None:
                self._entries.pop(key, None)
                return None
            cached = self._entries.get(key)
            if cached is not None and cached[0] == stamp:
                return cached[1]
        # stat 之后文件可能已被其他写者删除，此时 from_file 返回 None
        state = InstallState.from_file(key)
        if state is None:
            with self._lock:
                self._entries.pop(key, None)
            return None
        with self._lock:
            self._entries[key] = (stamp, state)
        return state

    # ---- 写入 ----

    def put(self, state: InstallState) -> None:
        path = self.metadata_path(state.package_id)
        state.save(path)
        key = path.resolve()
        stamp = _stamp(key)
        with self._lock:
            if stamp is not None:
                self._entries[key] = (stamp, state)
        logger.debug("已保存包状态: %s (%s)", state.package_id, state.status.value)

    def remove(self, package_id: PackageId) -> bool:
        path = self.metadata_path(package_id)
        key = path.resolve()
        with self._lock:
            self._entries.pop(key, None)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def update_status(self, package_id: PackageId, status: PackageStatus) -> InstallState:
        """更新包状态；迁移到 EXTRACTED 时记录当前时间（epoch 毫秒）

        异常:
            RegistryStateError: 包没有元数据
        """
        state = self.get(package_id)
        if state is None:
            raise RegistryStateError(f"包没有安装状态记录: {package_id}")
        state = dataclasses.replace(state, status=status)
        if status is PackageStatus.EXTRACTED:
            state.install_time = int(time.time() * 1000)
        self.put(state)
        return state
