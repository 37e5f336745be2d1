"""内容包文件（ZIP）读取与生成

包结构:
    META-INF/vault/properties.xml   包属性（Java properties XML）
    META-INF/vault/filter.xml       工作区过滤器（可选）
    jcr_root/...                    内容文件

本模块只读取注册表需要的元信息与内容条目，不处理更多的归档格式细节。
"""

from __future__ import annotations

import io
import logging
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Iterable, Mapping

from vaultpkg.core.dep.models import Dependency, PackageId
from vaultpkg.core.dep.subpackage import SubPackageHandling
from vaultpkg.core.dep.version import Version
from vaultpkg.core.exceptions import PackageError
from vaultpkg.core.filter import FilterRule, PathFilterSet, WorkspaceFilter

logger = logging.getLogger(__name__)

PROPERTIES_ENTRY = "META-INF/vault/properties.xml"
FILTER_ENTRY = "META-INF/vault/filter.xml"
JCR_ROOT = "jcr_root"
SUB_PACKAGE_ROOT = "/etc/packages/"

PROP_GROUP = "group"
PROP_NAME = "name"
PROP_VERSION = "version"
PROP_DEPENDENCIES = "dependencies"
PROP_SUB_PACKAGE_HANDLING = "subPackageHandling"


@dataclass
class EmbeddedPackage:
    """包内嵌的子包（位于 /etc/packages/ 之下的 .zip 条目）"""

    package_id: PackageId
    entry: str


@dataclass
class PackageArchive:
    """已解析的包文件元信息"""

    package_id: PackageId
    dependencies: list[Dependency] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    filter: WorkspaceFilter | None = None
    sub_package_handling: SubPackageHandling = field(default_factory=SubPackageHandling)
    content_paths: list[str] = field(default_factory=list)
    sub_packages: list[EmbeddedPackage] = field(default_factory=list)
    source: Path | None = None
    _data: bytes | None = field(default=None, repr=False)

    # ---- 打开 ----

    @classmethod
    def open(cls, path: str | Path) -> PackageArchive:
        """读取包文件

        异常:
            PackageError: 不是 ZIP、缺少 properties.xml / jcr_root 或包名非法
        """
        p = Path(path)
        try:
            with zipfile.ZipFile(p) as zf:
                archive = cls._read(zf, str(p))
        except (zipfile.BadZipFile, OSError) as e:
            raise PackageError(f"无法读取包文件: {p}: {e}") from e
        archive.source = p
        return archive

    @classmethod
    def from_bytes(cls, data: bytes, source: str = "<memory>") -> PackageArchive:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                archive = cls._read(zf, source)
        except zipfile.BadZipFile as e:
            raise PackageError(f"无法读取包文件: {source}: {e}") from e
        archive._data = data
        return archive

    @classmethod
    def _read(cls, zf: zipfile.ZipFile, source: str) -> PackageArchive:
        names = zf.namelist()
        if PROPERTIES_ENTRY not in names:
            raise PackageError(f"不是内容包，缺少 {PROPERTIES_ENTRY}: {source}")
        if not any(n == JCR_ROOT + "/" or n.startswith(JCR_ROOT + "/") for n in names):
            raise PackageError(f"不是内容包，缺少 '{JCR_ROOT}': {source}")

        props = read_properties(zf.read(PROPERTIES_ENTRY), source)
        name = props.get(PROP_NAME, "")
        if not name:
            raise PackageError(f"包属性缺少 name: {source}")
        pid = PackageId(
            props.get(PROP_GROUP, ""), name,
            Version.create(props.get(PROP_VERSION, "")),
        )
        if not pid.is_valid():
            raise PackageError(f"非法包名: {pid} ({source})")

        archive = cls(
            package_id=pid,
            dependencies=Dependency.parse(props.get(PROP_DEPENDENCIES, "")),
            properties=props,
            sub_package_handling=SubPackageHandling.from_string(
                props.get(PROP_SUB_PACKAGE_HANDLING)
            ),
        )
        if FILTER_ENTRY in names:
            archive.filter = read_filter(zf.read(FILTER_ENTRY), source)

        prefix = JCR_ROOT + "/"
        for entry in names:
            if not entry.startswith(prefix) or entry.endswith("/"):
                continue
            repo_path = "/" + entry[len(prefix):]
            archive.content_paths.append(repo_path)
            if repo_path.startswith(SUB_PACKAGE_ROOT) and repo_path.endswith(".zip"):
                try:
                    sub = cls.from_bytes(zf.read(entry), f"{source}!{entry}")
                except PackageError as e:
                    logger.warning("忽略无法解析的子包 %s: %s", entry, e)
                    continue
                archive.sub_packages.append(EmbeddedPackage(sub.package_id, entry))
        return archive

    # ---- 内容访问 ----

    def read_entry(self, entry: str) -> bytes:
        if self._data is not None:
            with zipfile.ZipFile(io.BytesIO(self._data)) as zf:
                return zf.read(entry)
        if self.source is None:
            raise PackageError(f"包 {self.package_id} 没有可读取的内容来源")
        with zipfile.ZipFile(self.source) as zf:
            return zf.read(entry)

    def read_content(self, repo_path: str) -> bytes:
        """按仓库路径读取内容文件，如 /apps/x/a.txt"""
        return self.read_entry(JCR_ROOT + repo_path)


# ---- properties.xml / filter.xml ----


def read_properties(data: bytes, source: str = "<properties>") -> dict[str, str]:
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise PackageError(f"包属性文件语法错误: {source}: {e}") from e
    return {
        el.get("key", ""): el.text or ""
        for el in root.iter("entry") if el.get("key")
    }


def write_properties(props: Mapping[str, str]) -> bytes:
    root = ET.Element("properties")
    ET.SubElement(root, "comment").text = "vaultpkg package properties"
    for key, value in props.items():
        ET.SubElement(root, "entry", {"key": key}).text = value
    ET.indent(root)
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'.encode("utf-8")


def read_filter(data: bytes, source: str = "<filter>") -> WorkspaceFilter:
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise PackageError(f"过滤器文件语法错误: {source}: {e}") from e
    ws = WorkspaceFilter()
    for f_el in root.iter("filter"):
        fs = PathFilterSet(f_el.get("root", "/"))
        for rule in f_el:
            if rule.tag in ("include", "exclude"):
                fs.rules.append(FilterRule(rule.get("pattern", ""), rule.tag == "include"))
        ws.filter_sets.append(fs)
    return ws


def write_filter(ws: WorkspaceFilter) -> bytes:
    root = ET.Element("workspaceFilter", {"version": "1.0"})
    for fs in ws.filter_sets:
        f_el = ET.SubElement(root, "filter", {"root": fs.root})
        for rule in fs.rules:
            ET.SubElement(f_el, "include" if rule.include else "exclude", {"pattern": rule.pattern})
    ET.indent(root)
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'.encode("utf-8")


# ---- 生成 ----


def build_package(
    dest: str | Path | IO[bytes],
    package_id: PackageId,
    *,
    dependencies: Iterable[Dependency] = (),
    files: Mapping[str, bytes | str] | None = None,
    filter: WorkspaceFilter | None = None,  # noqa: A002
    sub_package_handling: SubPackageHandling | None = None,
    properties: Mapping[str, str] | None = None,
) -> None:
    """生成内容包文件

    files 的键为仓库路径（如 /apps/x/a.txt），内嵌子包放在 /etc/packages/ 下。
    """
    props: dict[str, str] = {
        PROP_GROUP: package_id.group,
        PROP_NAME: package_id.name,
        PROP_VERSION: str(package_id.version),
    }
    deps = Dependency.to_string(dependencies)
    if deps:
        props[PROP_DEPENDENCIES] = deps
    if sub_package_handling:
        props[PROP_SUB_PACKAGE_HANDLING] = sub_package_handling.to_string()
    props.update(properties or {})

    if isinstance(dest, (str, Path)):
        Path(dest).parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(dest, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(PROPERTIES_ENTRY, write_properties(props))
        if filter:
            zf.writestr(FILTER_ENTRY, write_filter(filter))
        zf.writestr(JCR_ROOT + "/", b"")
        for repo_path, content in (files or {}).items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            zf.writestr(JCR_ROOT + "/" + repo_path.lstrip("/"), data)


def build_package_bytes(package_id: PackageId, **kwargs: object) -> bytes:
    buf = io.BytesIO()
    build_package(buf, package_id, **kwargs)  # type: ignore[arg-type]
    return buf.getvalue()
