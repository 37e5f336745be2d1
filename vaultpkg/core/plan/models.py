"""执行计划数据模型

数据类:
- TaskType / TaskState: 任务类型与状态
- ImportOptions: 安装/提取选项，可序列化并精确还原
- PackageTask: 单个包任务，状态单向迁移 NEW -> COMPLETED | ERROR
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from vaultpkg.core.dep.models import PackageId
from vaultpkg.core.dep.subpackage import SubPackageHandling
from vaultpkg.core.exceptions import PlanFormatError
from vaultpkg.core.filter import WorkspaceFilter


class TaskType(str, Enum):
    INSTALL = "INSTALL"
    EXTRACT = "EXTRACT"
    UNINSTALL = "UNINSTALL"
    ADD = "ADD"
    REMOVE = "REMOVE"


class TaskState(str, Enum):
    NEW = "NEW"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class AccessControlHandling(str, Enum):
    IGNORE = "IGNORE"
    OVERWRITE = "OVERWRITE"
    MERGE = "MERGE"
    MERGE_PRESERVE = "MERGE_PRESERVE"
    CLEAR = "CLEAR"


class DependencyHandling(str, Enum):
    STRICT = "STRICT"
    REQUIRED = "REQUIRED"
    BEST_EFFORT = "BEST_EFFORT"


class ImportMode(str, Enum):
    REPLACE = "REPLACE"
    MERGE = "MERGE"
    UPDATE = "UPDATE"


# 序列化键名 -> 字段名
_OPTION_KEYS = {
    "isStrict": "strict",
    "acHandling": "ac_handling",
    "cugHandling": "cug_handling",
    "autoSaveThreshold": "auto_save_threshold",
    "dependencyHandling": "dependency_handling",
    "nonRecursive": "non_recursive",
    "dryRun": "dry_run",
    "importMode": "import_mode",
    "subPackageHandling": "sub_package_handling",
    "filter": "filter",
}

_ENUM_FIELDS: dict[str, type[Enum]] = {
    "ac_handling": AccessControlHandling,
    "cug_handling": AccessControlHandling,
    "dependency_handling": DependencyHandling,
    "import_mode": ImportMode,
}
_BOOL_FIELDS = ("strict", "non_recursive", "dry_run")


@dataclass
class ImportOptions:
    """安装/提取选项

    字段为 None 表示未设置（使用提取器默认行为），序列化时省略。
    filter 由过滤/范围协作方提供，核心只透传。
    """

    strict: bool | None = None
    ac_handling: AccessControlHandling | None = None
    cug_handling: AccessControlHandling | None = None
    auto_save_threshold: int | None = None
    dependency_handling: DependencyHandling | None = None
    non_recursive: bool | None = None
    dry_run: bool | None = None
    import_mode: ImportMode | None = None
    sub_package_handling: SubPackageHandling | None = None
    filter: WorkspaceFilter | None = None

    @property
    def is_dry_run(self) -> bool:
        return bool(self.dry_run)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for key, attr in _OPTION_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, SubPackageHandling):
                value = value.to_string()
            elif isinstance(value, WorkspaceFilter):
                value = value.to_list()
            data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ImportOptions:
        """由 to_dict 的结果还原

        异常:
            PlanFormatError: 未知键或取值类型不符
        """
        opts = cls()
        for key, raw in (data or {}).items():
            attr = _OPTION_KEYS.get(key)
            if attr is None:
                raise PlanFormatError(f"未知的任务选项: {key}")
            if raw is None:
                continue
            try:
                value = _convert(attr, raw)
            except (ValueError, TypeError) as e:
                raise PlanFormatError(f"任务选项 {key} 取值无效: {raw!r}") from e
            setattr(opts, attr, value)
        return opts

    def __bool__(self) -> bool:
        return any(getattr(self, f.name) is not None for f in fields(self))


def _convert(attr: str, raw: Any) -> Any:
    if attr in _ENUM_FIELDS:
        return _ENUM_FIELDS[attr](str(raw).upper())
    if attr in _BOOL_FIELDS:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text not in ("true", "false"):
            raise ValueError(raw)
        return text == "true"
    if attr == "auto_save_threshold":
        if isinstance(raw, bool):
            raise TypeError(raw)
        return int(raw)
    if attr == "sub_package_handling":
        return SubPackageHandling.from_string(str(raw))
    if attr == "filter":
        if not isinstance(raw, list):
            raise TypeError(raw)
        return WorkspaceFilter.from_list(raw)
    return raw


@dataclass
class PackageTask:
    """执行计划中的单个任务"""

    package_id: PackageId
    type: TaskType
    options: ImportOptions | None = None
    state: TaskState = TaskState.NEW
    error: Exception | None = field(default=None, compare=False)

    def complete(self) -> None:
        self._transition(TaskState.COMPLETED)

    def fail(self, error: Exception) -> None:
        self._transition(TaskState.ERROR)
        self.error = error

    def _transition(self, target: TaskState) -> None:
        if self.state is not TaskState.NEW:
            raise RuntimeError(
                f"任务 {self} 已结束 ({self.state.value})，不能再迁移到 {target.value}"
            )
        self.state = target

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "cmd": self.type.value.lower(),
            "packageId": str(self.package_id),
        }
        if self.options is not None:
            data["options"] = self.options.to_dict()
        return data

    def __str__(self) -> str:
        return f"{self.type.value.lower()} {self.package_id}"
