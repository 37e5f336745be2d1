"""执行计划构建器

职责:
- 追加任务（不做校验）、声明外部已满足的包
- 执行前整体校验: 包必须已注册；INSTALL / EXTRACT 的未解析依赖
  必须由计划中更早的任务或外部包覆盖，否则整个计划不执行
- 计划的 YAML 序列化与还原（任务、类型、选项精确往返）

计划文件格式:
    version: '1.0'
    tasks:
      - cmd: extract
        packageId: my_group:pkg:1.0
        options:
          dryRun: false
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable

from vaultpkg.core.dep.models import PackageId
from vaultpkg.core.exceptions import (
    DependencyUnsatisfiedError,
    NoSuchPackageError,
    PlanFormatError,
)
from vaultpkg.core.plan.models import ImportOptions, PackageTask, TaskType
from vaultpkg.core.plan.plan import ExecutionPlan
from vaultpkg.utils.yaml_io import dump_yaml, load_yaml, parse_yaml, save_yaml

if TYPE_CHECKING:
    from vaultpkg.core.registry.base import AbstractPackageRegistry

logger = logging.getLogger(__name__)

SUPPORTED_VERSION = 1.0

_DEPENDENT_TYPES = (TaskType.INSTALL, TaskType.EXTRACT)


class ExecutionPlanBuilder:
    """逐步构建执行计划，执行前整体校验"""

    def __init__(self, registry: AbstractPackageRegistry) -> None:
        self.registry = registry
        self.version = SUPPORTED_VERSION
        self._tasks: list[PackageTask] = []
        self._external: set[PackageId] = set()

    @property
    def tasks(self) -> list[PackageTask]:
        return list(self._tasks)

    @property
    def external_packages(self) -> set[PackageId]:
        return set(self._external)

    def add_task(
        self,
        package_id: PackageId,
        task_type: TaskType,
        options: ImportOptions | None = None,
    ) -> ExecutionPlanBuilder:
        self._tasks.append(PackageTask(package_id, TaskType(task_type), options))
        return self

    def with_external_packages(self, package_ids: Iterable[PackageId]) -> ExecutionPlanBuilder:
        """声明由外部提供的包，依赖它们视为已满足"""
        self._external = set(package_ids)
        return self

    # ---- 校验与执行 ----

    def validate(self) -> ExecutionPlan:
        """校验整个计划并生成待执行的 ExecutionPlan

        异常:
            NoSuchPackageError: 任务的包未注册
            DependencyUnsatisfiedError: INSTALL / EXTRACT 任务存在未满足的依赖
        """
        covered: list[PackageId] = sorted(self._external)
        for task in self._tasks:
            pid = task.package_id
            if not self.registry.contains(pid):
                raise NoSuchPackageError(pid)
            if task.type in _DEPENDENT_TYPES:
                report = self.registry.analyze_dependencies(pid, False)
                missing = [
                    dep for dep in report.unresolved
                    if not any(dep.matches(c) for c in covered)
                ]
                if missing:
                    logger.error("计划校验失败: %s 依赖未满足 %s", pid, missing)
                    raise DependencyUnsatisfiedError(pid, missing)
            covered.append(pid)
        for task in self._tasks:
            logger.info("- %s", task)
        return ExecutionPlan(
            self.registry,
            [PackageTask(t.package_id, t.type, t.options) for t in self._tasks],
        )

    def execute(self) -> ExecutionPlan:
        """校验后执行；校验失败时不执行任何任务"""
        return self.validate().execute()

    def preview(self) -> set[PackageId]:
        """校验并返回计划涉及的包"""
        return {t.package_id for t in self.validate().tasks}

    # ---- 序列化 ----

    def dump(self) -> dict[str, Any]:
        return {
            "version": str(self.version),
            "tasks": [t.to_dict() for t in self._tasks],
        }

    def dumps(self) -> str:
        return dump_yaml(self.dump())

    def save(self, path: str | Path) -> ExecutionPlanBuilder:
        save_yaml(path, self.dump())
        logger.info("执行计划已保存: %s (%d 个任务)", path, len(self._tasks))
        return self

    def load(self, path: str | Path) -> ExecutionPlanBuilder:
        """从 YAML 文件加载任务（替换当前任务列表）"""
        if not Path(path).exists():
            raise PlanFormatError(f"执行计划文件不存在: {path}")
        return self.load_dict(load_yaml(path))

    def loads(self, text: str) -> ExecutionPlanBuilder:
        return self.load_dict(parse_yaml(text, source="<plan>"))

    def load_dict(self, data: dict[str, Any]) -> ExecutionPlanBuilder:
        """异常: PlanFormatError 版本不受支持或任务格式错误"""
        raw_version = data.get("version") or "1.0"
        try:
            version = float(raw_version)
        except (TypeError, ValueError) as e:
            raise PlanFormatError(f"执行计划版本无效: {raw_version!r}") from e
        if version > SUPPORTED_VERSION:
            raise PlanFormatError(f"不支持的执行计划版本: {version}")

        raw_tasks = data.get("tasks") or []
        if not isinstance(raw_tasks, list):
            raise PlanFormatError("tasks 必须是列表")
        tasks = [_task_from_dict(item) for item in raw_tasks]
        self.version = version
        self._tasks = tasks
        return self

    @classmethod
    def from_dict(
        cls, registry: AbstractPackageRegistry, data: dict[str, Any],
    ) -> ExecutionPlanBuilder:
        return cls(registry).load_dict(data)


def _task_from_dict(item: Any) -> PackageTask:
    if not isinstance(item, dict):
        raise PlanFormatError(f"任务必须是字典: {item!r}")
    cmd = str(item.get("cmd", "")).upper()
    try:
        task_type = TaskType(cmd)
    except ValueError as e:
        raise PlanFormatError(f"未知的任务类型: {item.get('cmd')!r}") from e
    pid = PackageId.from_string(str(item.get("packageId") or ""))
    if pid is None:
        raise PlanFormatError(f"任务缺少 packageId: {item!r}")
    options = None
    if "options" in item:
        raw = item["options"]
        if raw is not None and not isinstance(raw, dict):
            raise PlanFormatError(f"任务选项必须是字典: {raw!r}")
        options = ImportOptions.from_dict(raw)
    return PackageTask(pid, task_type, options)
