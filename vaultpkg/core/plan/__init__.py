"""执行计划

拆分说明:
- models.py: TaskType / TaskState / ImportOptions / PackageTask
- plan.py: ExecutionPlan，按顺序执行任务并汇总结果
- builder.py: ExecutionPlanBuilder，构建、校验与 YAML 序列化
"""

from vaultpkg.core.plan.builder import SUPPORTED_VERSION, ExecutionPlanBuilder
from vaultpkg.core.plan.models import (
    AccessControlHandling,
    DependencyHandling,
    ImportMode,
    ImportOptions,
    PackageTask,
    TaskState,
    TaskType,
)
from vaultpkg.core.plan.plan import ExecutionPlan

__all__ = [
    "AccessControlHandling",
    "DependencyHandling",
    "ExecutionPlan",
    "ExecutionPlanBuilder",
    "ImportMode",
    "ImportOptions",
    "PackageTask",
    "SUPPORTED_VERSION",
    "TaskState",
    "TaskType",
]
