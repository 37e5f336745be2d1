"""执行计划

职责:
- 按追加顺序逐个执行任务（调用注册表 / 内容提取器）
- 单个任务失败只标记该任务 ERROR，继续执行后续任务
- 只执行一次，重复调用 execute() 仅告警
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from vaultpkg.core.exceptions import NoSuchPackageError, PackageError
from vaultpkg.core.plan.models import PackageTask, TaskState, TaskType

if TYPE_CHECKING:
    from vaultpkg.core.registry.base import AbstractPackageRegistry

logger = logging.getLogger(__name__)


class ExecutionPlan:
    """已校验、待执行的任务序列"""

    def __init__(self, registry: AbstractPackageRegistry, tasks: list[PackageTask]) -> None:
        self.registry = registry
        self._tasks = tasks
        self._executed = False

    @property
    def tasks(self) -> list[PackageTask]:
        return list(self._tasks)

    def is_executed(self) -> bool:
        return self._executed

    def has_errors(self) -> bool:
        return any(t.state is TaskState.ERROR for t in self._tasks)

    def summary(self) -> dict[str, int]:
        counts = {s.value: 0 for s in TaskState}
        for t in self._tasks:
            counts[t.state.value] += 1
        return counts

    def execute(self) -> ExecutionPlan:
        if self._executed:
            logger.warning("执行计划已执行过，忽略本次调用")
            return self
        self._executed = True
        logger.info("开始执行计划: %d 个任务", len(self._tasks))
        for task in self._tasks:
            self._run_task(task)
        logger.info("执行计划结束: %s", self.summary())
        return self

    def _run_task(self, task: PackageTask) -> None:
        handler = _HANDLERS[task.type]
        logger.info(
            "执行任务: %s", task,
            extra={"package_id": task.package_id, "task_type": task.type.value},
        )
        try:
            handler(self.registry, task)
        except Exception as e:
            logger.error(
                "任务失败: %s: %s", task, e,
                extra={"package_id": task.package_id, "task_type": task.type.value},
            )
            task.fail(e)
        else:
            task.complete()


# ---- 任务处理函数 ----


def _install(registry: AbstractPackageRegistry, task: PackageTask) -> None:
    registry.install_package(task.package_id, task.options, extract=False)


def _extract(registry: AbstractPackageRegistry, task: PackageTask) -> None:
    registry.install_package(task.package_id, task.options, extract=True)


def _uninstall(registry: AbstractPackageRegistry, task: PackageTask) -> None:
    registry.uninstall_package(task.package_id, task.options)


def _add(registry: AbstractPackageRegistry, task: PackageTask) -> None:
    if not registry.contains(task.package_id):
        raise NoSuchPackageError(task.package_id)


def _remove(registry: AbstractPackageRegistry, task: PackageTask) -> None:
    pkg = registry.open(task.package_id)
    if pkg is None:
        raise NoSuchPackageError(task.package_id)
    if pkg.is_installed:
        raise PackageError(f"不能删除已安装的包，请先卸载: {task.package_id}")
    registry.remove(task.package_id)


_HANDLERS: dict[TaskType, Callable[[AbstractPackageRegistry, PackageTask], None]] = {
    TaskType.INSTALL: _install,
    TaskType.EXTRACT: _extract,
    TaskType.UNINSTALL: _uninstall,
    TaskType.ADD: _add,
    TaskType.REMOVE: _remove,
}
