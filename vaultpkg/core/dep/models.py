"""包标识与依赖声明

数据类:
- PackageId: (group, name, version) 三元组，规范串 group:name[:version]
- Dependency: (group, name, range) 匹配表达式，规范串 group:name[:range]

两者的字符串解析都是全函数：空串返回 None，其余输入尽力解析，不抛异常。
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from vaultpkg.core.dep.version import Version, VersionRange, explode

logger = logging.getLogger(__name__)

PACKAGES_ROOT = "/etc/packages"
PACKAGES_ROOT_PREFIX = PACKAGES_ROOT + "/"

_INT_RE = re.compile(r"[+-]?[0-9]+\Z")
_NCNAME_RE = re.compile(r"[^\W\d][\w.\-]*\Z")
_ILLEGAL_NAME_CHARS = frozenset("[]*|/")


def normalize_group(group: str) -> str:
    """去掉包根目录前缀与开头的 '/'"""
    if group == PACKAGES_ROOT:
        return ""
    if group.startswith(PACKAGES_ROOT_PREFIX):
        return group[len(PACKAGES_ROOT_PREFIX):]
    if group.startswith("/"):
        return group[1:]
    return group


def _strip_archive_ext(path: str) -> str:
    idx = path.rfind(".")
    if idx > 0 and path[idx:].lower() in (".zip", ".jar"):
        return path[:idx]
    return path


def _split_group(path: str) -> tuple[str, str]:
    """在最后一个 '/' 处切分出 (group, name)"""
    idx = path.rfind("/")
    if idx < 0:
        return "", path
    return normalize_group(path[:idx]), path[idx + 1:]


def _is_version_piece(piece: str) -> bool:
    """名称末尾的 '-' 段是否像版本号的一部分"""
    if _INT_RE.match(piece) and int(piece) >= 1000:
        return False
    first = piece[0]
    if first.isalpha() or first in "_$":
        if len(piece) == 1:
            return False
        if not piece[1].isdigit() and piece != "SNAPSHOT":
            return False
    return True


def is_valid_name(value: str) -> bool:
    """仓库节点名校验（简化版）

    不允许: 空串、'.'、'..'、首尾空格、除空格外的空白、[ ] * | /；
    允许一个 'prefix:' 前缀，prefix 必须是合法 NCName。
    """
    if not value or value in (".", ".."):
        return False
    if value != value.strip(" "):
        return False
    if any(c in _ILLEGAL_NAME_CHARS or (c.isspace() and c != " ") for c in value):
        return False
    if ":" in value:
        prefix, _, local = value.partition(":")
        if not _NCNAME_RE.match(prefix) or not local or ":" in local:
            return False
        if local != local.lstrip(" "):
            return False
    return True


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class PackageId:
    """包标识

    相等性与哈希基于规范字符串；排序按 (group, name) 字典序，再按版本。
    """

    group: str
    name: str
    version: Version = Version.EMPTY

    def __post_init__(self) -> None:
        object.__setattr__(self, "group", normalize_group(self.group))
        if self.version is None:
            object.__setattr__(self, "version", Version.EMPTY)
        elif isinstance(self.version, str):
            object.__setattr__(self, "version", Version.create(self.version))

    # ---- 解析 ----

    @classmethod
    def from_string(cls, text: str | None) -> PackageId | None:
        """解析 group:name[:version]，空串返回 None，多余的段忽略"""
        if not text:
            return None
        segs = explode(text, ":")
        if len(segs) <= 1:
            return cls("", segs[0] if segs else "")
        if len(segs) == 2:
            return cls(segs[0], segs[1])
        return cls(segs[0], segs[1], Version.create(segs[2]))

    @classmethod
    def from_strings(cls, texts: Iterable[str]) -> list[PackageId | None]:
        return [cls.from_string(t) for t in texts]

    @classmethod
    def from_path(
        cls, path: str, version: Version | str | None = None,
    ) -> PackageId:
        """由路径形式构造，如 /etc/packages/my_group/pkg-1.0.zip

        给定 version 时从路径末尾去掉 "-<version>"；
        否则按启发式规则从名称尾部拆出版本段。
        """
        path = _strip_archive_ext(path.strip())
        if version is not None:
            ver = version if isinstance(version, Version) else Version.create(version)
            suffix = f"-{ver}"
            if ver and path.endswith(suffix):
                path = path[:-len(suffix)]
            group, name = _split_group(path)
            return cls(group, name, ver)

        group, name = _split_group(path)
        segs = [s for s in name.split("-") if s]
        i = len(segs) - 1
        while i > 0 and _is_version_piece(segs[i]):
            i -= 1
        if i >= len(segs) - 1:
            return cls(group, name)
        return cls(
            group,
            "-".join(segs[:i + 1]),
            Version.create("-".join(segs[i + 1:])),
        )

    # ---- 格式化 ----

    def __str__(self) -> str:
        ver = str(self.version)
        if not ver:
            return f"{self.group}:{self.name}" if self.group else self.name
        return f"{self.group}:{self.name}:{ver}"

    @staticmethod
    def to_string_list(ids: Iterable[PackageId]) -> str:
        return ",".join(str(i) for i in ids)

    @property
    def version_string(self) -> str:
        return str(self.version)

    def _name_with_version(self) -> str:
        return f"{self.name}-{self.version}" if self.version else self.name

    @property
    def relative_installation_path(self) -> str:
        """group/name-version，作为注册表存储的相对路径"""
        if self.group:
            return f"{self.group}/{self._name_with_version()}"
        return self._name_with_version()

    @property
    def installation_path(self) -> str:
        return PACKAGES_ROOT_PREFIX + self.relative_installation_path

    @property
    def download_name(self) -> str:
        return self._name_with_version() + ".zip"

    def is_valid(self) -> bool:
        if not is_valid_name(self.name):
            return False
        if self.version and not is_valid_name(str(self.version)):
            return False
        return all(is_valid_name(seg) for seg in self.group.split("/") if seg)

    # ---- 比较 ----

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageId):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, PackageId):
            return NotImplemented
        if self.group != other.group:
            return self.group < other.group
        if self.name != other.name:
            return self.name < other.name
        return self.version.compare(other.version) < 0


@dataclass(frozen=True, eq=False)
class Dependency:
    """依赖声明：group/name 精确匹配 + 版本区间

    location 为可选的第 4 段（包来源地址），只做透传。
    """

    group: str
    name: str
    range: VersionRange = field(default=VersionRange.INFINITE)
    location: str | None = None

    def __post_init__(self) -> None:
        if self.group.startswith(PACKAGES_ROOT_PREFIX):
            object.__setattr__(self, "group", self.group[len(PACKAGES_ROOT_PREFIX):])
        if self.range is None:
            object.__setattr__(self, "range", VersionRange.INFINITE)

    @classmethod
    def of(cls, package_id: PackageId) -> Dependency:
        """对指定标识的精确版本依赖"""
        return cls(
            package_id.group, package_id.name,
            VersionRange.exact(package_id.version),
        )

    def matches(self, package_id: PackageId) -> bool:
        return (
            self.group == package_id.group
            and self.name == package_id.name
            and self.range.is_in_range(package_id.version)
        )

    # ---- 解析 ----

    @classmethod
    def from_string(cls, text: str | None) -> Dependency | None:
        """解析单条依赖，兼容旧格式

        - "name" 或 "group/name"
        - "group:name"，或旧格式 "group/name:range"（第二段以数字、'['、')' 开头）
        - "group:name:range[:location]"
        """
        if not text:
            return None
        segs = text.split(":", 3)
        group = ""
        range_text: str | None = None
        location: str | None = None
        if len(segs) == 1:
            name = segs[0]
            idx = name.rfind("/")
            if idx >= 0:
                group, name = name[:idx], name[idx + 1:]
        elif len(segs) == 2:
            group, name = segs
            looks_like_version = not name or name[0].isdigit() or name[0] in "[)"
            idx = name.rfind("/")
            if idx >= 0 and not group:
                group, name = name[:idx], name[idx + 1:]
            elif "/" in group and looks_like_version:
                idx = group.rfind("/")
                group, name, range_text = segs[0][:idx], segs[0][idx + 1:], segs[1]
        else:
            group, name, range_text = segs[0], segs[1], segs[2]
            if len(segs) == 4:
                location = segs[3]
        return cls(group, name, _parse_range(range_text, text), location)

    @classmethod
    def parse(cls, text: str) -> list[Dependency]:
        """解析逗号分隔的依赖列表，区间括号内的逗号不作为分隔符"""
        deps: list[Dependency] = []
        in_range = False
        was_seg = False
        start = 0
        for i, c in enumerate(text):
            if c == ",":
                if not in_range:
                    dep = cls.from_string(text[start:i])
                    if dep is not None:
                        deps.append(dep)
                    start = i + 1
            elif c in "[(":
                if was_seg:
                    in_range = True
            elif c in "])":
                in_range = False
            was_seg = c == ":"
        if start < len(text):
            dep = cls.from_string(text[start:])
            if dep is not None:
                deps.append(dep)
        return deps

    @classmethod
    def from_strings(cls, texts: Iterable[str]) -> list[Dependency]:
        return [d for d in (cls.from_string(t) for t in texts) if d is not None]

    # ---- 格式化 ----

    def __str__(self) -> str:
        parts = []
        if self.group or not self.range.is_infinite or self.location is not None:
            parts.append(f"{self.group}:")
        parts.append(self.name)
        if not self.range.is_infinite or self.location is not None:
            parts.append(f":{self.range}")
        if self.location is not None:
            parts.append(f":{self.location}")
        return "".join(parts)

    @staticmethod
    def to_string(deps: Iterable[Dependency | None]) -> str:
        return ",".join(str(d) for d in deps if d is not None)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))


def _parse_range(range_text: str | None, source: str) -> VersionRange:
    if range_text is None:
        return VersionRange.INFINITE
    try:
        return VersionRange.parse(range_text)
    except ValueError as e:
        # 保持解析为全函数：无法解析的区间按 "下界版本" 处理
        logger.warning("依赖 %r 的版本区间无效 (%s)，按下界版本处理", source, e)
        return VersionRange(Version.create(range_text), True, None, False)


# ---- 依赖列表工具 ----


def matches_any(deps: Sequence[Dependency], package_id: PackageId) -> bool:
    """任一依赖匹配该标识"""
    return any(d.matches(package_id) for d in deps)


def add_exact(deps: Sequence[Dependency], package_id: PackageId) -> list[Dependency]:
    """追加对 package_id 的精确依赖；已有依赖能匹配时原样返回"""
    if matches_any(deps, package_id):
        return list(deps)
    return [*deps, Dependency.of(package_id)]


def add(deps: Sequence[Dependency], dep: Dependency) -> list[Dependency]:
    """追加依赖；已存在同 group/name 的依赖时保留原有的"""
    for d in deps:
        if d.name == dep.name and d.group == dep.group:
            return list(deps)
    return [*deps, dep]
