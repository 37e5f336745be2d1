"""内容过滤器（工作区过滤）

PathFilterSet 以 root 为根，按顺序应用 include / exclude 正则规则；
WorkspaceFilter 是若干 PathFilterSet 的集合。注册表只负责持久化与透传，
FileSystemExtractor 用它限定提取范围。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FilterRule:
    pattern: str
    include: bool = True

    def matches(self, path: str) -> bool:
        return re.fullmatch(self.pattern, path) is not None


@dataclass
class PathFilterSet:
    root: str
    rules: list[FilterRule] = field(default_factory=list)

    def covers(self, path: str) -> bool:
        """path 位于 root 之下（含 root 本身）"""
        root = self.root.rstrip("/") or "/"
        if root == "/":
            return path.startswith("/")
        return path == root or path.startswith(root + "/")

    def contains(self, path: str) -> bool:
        """在 root 之下且通过规则过滤；最后一条匹配的规则生效

        无规则时全部包含；首条规则为 include 时默认排除，反之默认包含。
        """
        if not self.covers(path):
            return False
        if not self.rules:
            return True
        result = not self.rules[0].include
        for rule in self.rules:
            if rule.matches(path):
                result = rule.include
        return result

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"root": self.root}
        if self.rules:
            data["rules"] = [
                {"include" if r.include else "exclude": r.pattern}
                for r in self.rules
            ]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PathFilterSet:
        rules = []
        for raw in data.get("rules", []) or []:
            if "include" in raw:
                rules.append(FilterRule(str(raw["include"]), True))
            elif "exclude" in raw:
                rules.append(FilterRule(str(raw["exclude"]), False))
        return cls(root=str(data.get("root", "/")), rules=rules)


@dataclass
class WorkspaceFilter:
    filter_sets: list[PathFilterSet] = field(default_factory=list)

    @classmethod
    def from_roots(cls, *roots: str) -> WorkspaceFilter:
        return cls([PathFilterSet(r) for r in roots])

    @property
    def roots(self) -> list[str]:
        return [fs.root for fs in self.filter_sets]

    def contains(self, path: str) -> bool:
        return any(fs.contains(path) for fs in self.filter_sets)

    def to_list(self) -> list[dict[str, Any]]:
        return [fs.to_dict() for fs in self.filter_sets]

    @classmethod
    def from_list(cls, data: list[dict[str, Any]] | None) -> WorkspaceFilter | None:
        if data is None:
            return None
        return cls([PathFilterSet.from_dict(d) for d in data])

    def __bool__(self) -> bool:
        return bool(self.filter_sets)
