"""依赖图求解

职责:
- resolve_order: 给定 {标识: 依赖声明}，输出依赖在前的安装顺序，检测环
- sort_packages: 对任意带标识与依赖的对象按安装顺序重排

只有输入集合内的标识参与排序，匹配集合外标识的依赖被忽略。
相互独立的包保持输入顺序。
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable, Mapping, Sequence, TypeVar

from vaultpkg.core.dep.models import Dependency, PackageId
from vaultpkg.core.exceptions import CyclicDependencyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _Mark(Enum):
    IN_PROGRESS = 1
    DONE = 2


def resolve_order(
    mapping: Mapping[PackageId, Sequence[Dependency]],
) -> list[PackageId]:
    """计算安装顺序（深度优先、后序输出）

    按输入顺序为每个标识构造精确依赖作为遍历起点；对每条依赖，
    依次访问集合内所有匹配的标识：进行中的标识再次出现即为环，
    未访问的先递归处理其依赖，完成后追加到输出末尾。

    异常:
        CyclicDependencyError: 依赖存在环（包括自依赖），不返回部分结果
    """
    marks: dict[PackageId, _Mark] = {}
    order: list[PackageId] = []
    candidates = list(mapping.items())

    def visit(deps: Iterable[Dependency]) -> None:
        for dep in deps:
            for pid, pid_deps in candidates:
                if not dep.matches(pid):
                    continue
                mark = marks.get(pid)
                if mark is _Mark.IN_PROGRESS:
                    logger.error("包依赖存在环: %s", pid)
                    raise CyclicDependencyError(f"包依赖存在环: {pid}")
                if mark is _Mark.DONE:
                    continue
                marks[pid] = _Mark.IN_PROGRESS
                visit(pid_deps)
                marks[pid] = _Mark.DONE
                order.append(pid)

    visit(Dependency.of(pid) for pid in mapping)
    return order


def sort_packages(
    items: Iterable[T],
    id_of: Callable[[T], PackageId],
    deps_of: Callable[[T], Sequence[Dependency]],
) -> list[T]:
    """按安装顺序重排对象列表（同一标识只保留第一个对象）"""
    mapping: dict[PackageId, Sequence[Dependency]] = {}
    by_id: dict[PackageId, T] = {}
    for item in items:
        pid = id_of(item)
        if pid in by_id:
            continue
        mapping[pid] = deps_of(item)
        by_id[pid] = item
    return [by_id[pid] for pid in resolve_order(mapping)]
