"""子包处理策略

一个包内嵌的子包在安装时如何处理，由一组有序规则决定:
    group:name;option[,group:name;option ...]
group / name 为空或 '*' 表示任意；后出现的匹配规则覆盖先出现的。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from vaultpkg.core.dep.models import PackageId

WILDCARD = "*"


class SubPackageOption(str, Enum):
    INSTALL = "INSTALL"
    EXTRACT = "EXTRACT"
    ADD = "ADD"
    IGNORE = "IGNORE"

    @classmethod
    def parse(cls, text: str, default: SubPackageOption | None = None) -> SubPackageOption:
        """大小写不敏感解析，无法识别时返回 default（缺省 INSTALL）"""
        try:
            return cls(text.strip().upper())
        except ValueError:
            return default or cls.INSTALL


@dataclass(frozen=True)
class SubPackageRule:
    group: str
    name: str
    option: SubPackageOption

    def __post_init__(self) -> None:
        object.__setattr__(self, "group", self.group or WILDCARD)
        object.__setattr__(self, "name", self.name or WILDCARD)

    def matches(self, package_id: PackageId) -> bool:
        if self.group != WILDCARD and self.group != package_id.group:
            return False
        return self.name == WILDCARD or self.name == package_id.name


@dataclass
class SubPackageHandling:
    rules: list[SubPackageRule] = field(default_factory=list)

    @classmethod
    def from_string(cls, text: str | None) -> SubPackageHandling:
        handling = cls()
        if not text:
            return handling
        for instruction in text.split(","):
            instruction = instruction.strip()
            if not instruction:
                continue
            opts = [o for o in instruction.split(";") if o]
            if not opts:
                continue
            pid = PackageId.from_string(opts[0])
            option = SubPackageOption.parse(opts[1]) if len(opts) > 1 else SubPackageOption.INSTALL
            group = pid.group if pid else ""
            name = pid.name if pid else ""
            handling.rules.append(SubPackageRule(group, name, option))
        return handling

    def add(self, group: str, name: str, option: SubPackageOption) -> SubPackageHandling:
        self.rules.append(SubPackageRule(group, name, option))
        return self

    def get_option(self, package_id: PackageId) -> SubPackageOption:
        """最后一条匹配的规则生效，没有匹配时为 INSTALL"""
        option = SubPackageOption.INSTALL
        for rule in self.rules:
            if rule.matches(package_id):
                option = rule.option
        return option

    def to_string(self) -> str:
        parts = []
        for rule in self.rules:
            entry = f"{rule.group}:{rule.name}"
            if rule.option is not SubPackageOption.INSTALL:
                entry += f";{rule.option.value.lower()}"
            parts.append(entry)
        return ",".join(parts)

    def __str__(self) -> str:
        return self.to_string()

    def __bool__(self) -> bool:
        return bool(self.rules)
