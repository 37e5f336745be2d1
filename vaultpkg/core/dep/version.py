"""版本号与版本区间

职责:
- Version: 点分版本号；默认比较用于排序展示，OSGi 风格比较用于区间判断
- VersionRange: 区间 [low,high) 等的解析、格式化与包含判断

版本字符串的解析是宽松的：任意输入都能得到一个 Version，
无法按数字比较的段退化为字典序比较。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import ClassVar, Sequence

_INT_RE = re.compile(r"[+-]?[0-9]+\Z")


def explode(value: str, sep: str) -> list[str]:
    """按分隔符切分并丢弃末尾空段；不含分隔符时原样返回单元素列表"""
    if sep not in value:
        return [value]
    parts = value.split(sep)
    while parts and parts[-1] == "":
        parts.pop()
    return parts


def _sign(n: int) -> int:
    return (n > 0) - (n < 0)


def _compare_piece(a: str, b: str) -> int:
    """数字优先比较，数值相等或非数字时按字典序"""
    if _INT_RE.match(a) and _INT_RE.match(b):
        diff = int(a) - int(b)
        if diff:
            return _sign(diff)
    return (a > b) - (a < b)


@dataclass(frozen=True)
class Version:
    """点分版本号

    相等性与哈希基于原始字符串；空版本 EMPTY 排在最前，字符串为 ""。
    大小比较只看 compare()，因此 "1" 与 "1." 互相 <= 但并不相等。
    """

    text: str = ""
    segments: tuple[str, ...] = field(init=False, compare=False, repr=False)

    EMPTY: ClassVar[Version]

    def __post_init__(self) -> None:
        segs = tuple(explode(self.text, ".")) if self.text else ()
        object.__setattr__(self, "segments", segs)

    @classmethod
    def create(cls, value: str | Sequence[str] | None) -> Version:
        """由字符串或段列表构造，空输入返回 EMPTY"""
        if value is None:
            return cls.EMPTY
        if not isinstance(value, str):
            value = ".".join(value)
        if not value:
            return cls.EMPTY
        return cls(value)

    def __str__(self) -> str:
        return self.text

    def __bool__(self) -> bool:
        return bool(self.text)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) <= 0

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) > 0

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) >= 0

    def compare(self, other: Version) -> int:
        """默认比较，返回 -1 / 0 / 1

        在第一个不同的段上先尝试整数比较；否则按 '-' 再切分逐个比较，
        子段全部相同时子段更少的一方更大（"2.1" > "2.1-SNAPSHOT"）。
        所有可比段都相同时，段更少的一方更小。
        """
        for s1, s2 in zip(self.segments, other.segments):
            if s1 == s2:
                continue
            if _INT_RE.match(s1) and _INT_RE.match(s2):
                diff = int(s1) - int(s2)
                if diff:
                    return _sign(diff)
            sub1 = explode(s1, "-")
            sub2 = explode(s2, "-")
            for c1, c2 in zip(sub1, sub2):
                c = _compare_piece(c1, c2)
                if c:
                    return c
            if len(sub1) != len(sub2):
                return _sign(len(sub2) - len(sub1))
        return _sign(len(self.segments) - len(other.segments))

    def osgi_compare(self, other: Version) -> int:
        """OSGi 风格比较：所有段按 '-' 展平后逐个比较，更长者更大"""
        mine = self._flat_pieces()
        theirs = other._flat_pieces()
        for a, b in zip(mine, theirs):
            c = _compare_piece(a, b)
            if c:
                return c
        return _sign(len(mine) - len(theirs))

    def _flat_pieces(self) -> list[str]:
        return [p for seg in self.segments for p in explode(seg, "-")]


Version.EMPTY = Version("")


@dataclass(frozen=True, eq=False)
class VersionRange:
    """版本区间，任一端可缺省（无界）

    约束: 两端都存在时 low <= high；low == high 时两端都必须闭合。
    相等性与哈希基于规范字符串形式。
    """

    low: Version | None = None
    low_inclusive: bool = False
    high: Version | None = None
    high_inclusive: bool = False

    INFINITE: ClassVar[VersionRange]

    def __post_init__(self) -> None:
        if self.low is not None and self.high is not None:
            comp = self.low.compare(self.high)
            if comp > 0:
                raise ValueError(
                    f"区间下界必须小于等于上界: {self.low} > {self.high}"
                )
            if comp == 0 and not (self.low_inclusive and self.high_inclusive):
                raise ValueError(
                    f"上下界相同 ({self.low}) 时两端必须都是闭区间"
                )

    @classmethod
    def exact(cls, version: Version) -> VersionRange:
        return cls(version, True, version, True)

    @classmethod
    def parse(cls, text: str) -> VersionRange:
        """解析区间字符串

        - "": 无界区间
        - "1.0": 下界 1.0（闭），无上界
        - "[1.0,2.0)" 等括号形式，任一端可为空

        异常:
            ValueError: 含逗号但缺少括号，或边界不满足约束
        """
        idx = text.find(",")
        if idx >= 0:
            low_incl = False
            lm = text.find("(")
            if lm < 0:
                lm = text.find("[")
                if lm < 0:
                    raise ValueError(f"区间必须以 '[' 或 '(' 开头: {text!r}")
                low_incl = True
            high_incl = False
            hm = text.find(")")
            if hm < 0:
                hm = text.find("]")
                if hm < 0:
                    raise ValueError(f"区间必须以 ']' 或 ')' 结尾: {text!r}")
                high_incl = True
            low = text[lm + 1:idx].strip()
            high = text[idx + 1:hm].strip()
            return cls(
                Version.create(low) if low else None, low_incl,
                Version.create(high) if high else None, high_incl,
            )
        if not text:
            return cls.INFINITE
        return cls(Version.create(text), True, None, False)

    def is_in_range(self, version: Version) -> bool:
        """判断版本是否落在区间内（OSGi 风格比较）"""
        if self.low is not None:
            comp = version.osgi_compare(self.low)
            if comp < 0 or (comp == 0 and not self.low_inclusive):
                return False
        if self.high is not None:
            comp = version.osgi_compare(self.high)
            if comp > 0 or (comp == 0 and not self.high_inclusive):
                return False
        return True

    @property
    def is_infinite(self) -> bool:
        return self.low is None and self.high is None

    def __str__(self) -> str:
        if self.is_infinite:
            return ""
        if self.low is not None and self.high is None and self.low_inclusive:
            return str(self.low)
        return "".join((
            "[" if self.low_inclusive else "(",
            str(self.low) if self.low is not None else "",
            ",",
            str(self.high) if self.high is not None else "",
            "]" if self.high_inclusive else ")",
        ))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionRange):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))


VersionRange.INFINITE = VersionRange()
