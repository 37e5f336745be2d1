"""单个包的注册/安装状态及其 XML 持久化格式

每个包一份元数据文件，内容如下:

    <registryMetadata packageid="g:n:1.0" size="123" installtime="1700000000000"
                      filepath="g/n-1.0.zip" external="false" packagestatus="extracted">
        <workspacefilter>
            <filter root="/apps/x"><rule include="/apps/x/.*"/></filter>
        </workspacefilter>
        <dependency packageid="g:dep:[1.0,2.0)"/>
        <subpackage packageid="g:sub:1.0" sphoption="EXTRACT"/>
        <packageproperties key="value"/>
    </registryMetadata>

写入再读回必须逐字段一致；缺少 installtime 即表示没有安装时间。
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from vaultpkg.core.dep.models import Dependency, PackageId
from vaultpkg.core.dep.subpackage import SubPackageOption
from vaultpkg.core.exceptions import RegistryStateError
from vaultpkg.core.filter import FilterRule, PathFilterSet, WorkspaceFilter
from vaultpkg.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

TAG_REGISTRY_METADATA = "registryMetadata"
TAG_DEPENDENCY = "dependency"
TAG_SUBPACKAGE = "subpackage"
TAG_WORKSPACEFILTER = "workspacefilter"
TAG_FILTER = "filter"
TAG_RULE = "rule"
TAG_PACKAGEPROPERTIES = "packageproperties"

ATTR_PACKAGE_ID = "packageid"
ATTR_FILE_PATH = "filepath"
ATTR_PACKAGE_STATUS = "packagestatus"
ATTR_EXTERNAL = "external"
ATTR_SIZE = "size"
ATTR_INSTALLATION_TIME = "installtime"
ATTR_SUBPACKAGE_OPTION = "sphoption"
ATTR_ROOT = "root"
ATTR_INCLUDE = "include"
ATTR_EXCLUDE = "exclude"


class PackageStatus(str, Enum):
    REGISTERED = "REGISTERED"
    EXTRACTED = "EXTRACTED"
    REFUSED = "REFUSED"
    REMOVED = "REMOVED"


@dataclass
class InstallState:
    """包的持久化状态，注册表以它为唯一事实来源"""

    package_id: PackageId
    status: PackageStatus
    file_path: str = ""
    external: bool = False
    dependencies: set[Dependency] = field(default_factory=set)
    sub_packages: dict[PackageId, SubPackageOption] = field(default_factory=dict)
    install_time: int | None = None
    size: int = 0
    filter: WorkspaceFilter | None = None
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def is_installed(self) -> bool:
        return self.status is PackageStatus.EXTRACTED

    # ---- 读取 ----

    @classmethod
    def from_file(cls, path: str | Path) -> InstallState | None:
        """读取元数据文件，文件不存在或根元素不是 registryMetadata 时返回 None"""
        p = Path(path)
        try:
            text = p.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return cls.from_string(text, source=str(p))

    @classmethod
    def from_string(cls, text: str, source: str = "<string>") -> InstallState | None:
        try:
            doc = ET.fromstring(text)
        except ET.ParseError as e:
            raise RegistryStateError(f"元数据文件语法错误: {source}: {e}") from e
        if doc.tag != TAG_REGISTRY_METADATA:
            logger.debug("跳过非注册表元数据文件: %s", source)
            return None

        pid = PackageId.from_string(doc.get(ATTR_PACKAGE_ID, ""))
        if pid is None:
            raise RegistryStateError(f"元数据缺少 {ATTR_PACKAGE_ID}: {source}")
        try:
            status = PackageStatus(doc.get(ATTR_PACKAGE_STATUS, "").upper())
            install_time = doc.get(ATTR_INSTALLATION_TIME)
            state = cls(
                package_id=pid,
                status=status,
                file_path=doc.get(ATTR_FILE_PATH, ""),
                external=doc.get(ATTR_EXTERNAL, "").lower() == "true",
                install_time=int(install_time) if install_time is not None else None,
                size=int(doc.get(ATTR_SIZE, "0")),
            )
        except ValueError as e:
            raise RegistryStateError(f"元数据属性无效: {source}: {e}") from e

        for child in doc:
            if child.tag == TAG_DEPENDENCY:
                dep = Dependency.from_string(child.get(ATTR_PACKAGE_ID, ""))
                if dep is not None:
                    state.dependencies.add(dep)
            elif child.tag == TAG_SUBPACKAGE:
                sub = PackageId.from_string(child.get(ATTR_PACKAGE_ID, ""))
                if sub is not None:
                    state.sub_packages[sub] = SubPackageOption.parse(
                        child.get(ATTR_SUBPACKAGE_OPTION, "")
                    )
            elif child.tag == TAG_WORKSPACEFILTER:
                state.filter = _read_filter(child)
            elif child.tag == TAG_PACKAGEPROPERTIES:
                state.properties = dict(child.attrib)
            else:
                raise RegistryStateError(
                    f"{source}: 不支持的元素 <{child.tag}>，应为 <{TAG_DEPENDENCY}>、"
                    f"<{TAG_SUBPACKAGE}>、<{TAG_WORKSPACEFILTER}> 或 <{TAG_PACKAGEPROPERTIES}>"
                )
        return state

    # ---- 写入 ----

    def to_xml(self) -> str:
        attrs = {
            ATTR_PACKAGE_ID: str(self.package_id),
            ATTR_SIZE: str(self.size),
        }
        if self.install_time is not None:
            attrs[ATTR_INSTALLATION_TIME] = str(self.install_time)
        attrs[ATTR_FILE_PATH] = self.file_path
        attrs[ATTR_EXTERNAL] = "true" if self.external else "false"
        attrs[ATTR_PACKAGE_STATUS] = self.status.value.lower()
        root = ET.Element(TAG_REGISTRY_METADATA, attrs)

        if self.filter:
            ws = ET.SubElement(root, TAG_WORKSPACEFILTER)
            for fs in self.filter.filter_sets:
                f_el = ET.SubElement(ws, TAG_FILTER, {ATTR_ROOT: fs.root})
                for rule in fs.rules:
                    key = ATTR_INCLUDE if rule.include else ATTR_EXCLUDE
                    ET.SubElement(f_el, TAG_RULE, {key: rule.pattern})
        for dep in sorted(self.dependencies, key=str):
            ET.SubElement(root, TAG_DEPENDENCY, {ATTR_PACKAGE_ID: str(dep)})
        for sub in sorted(self.sub_packages):
            ET.SubElement(root, TAG_SUBPACKAGE, {
                ATTR_PACKAGE_ID: str(sub),
                ATTR_SUBPACKAGE_OPTION: self.sub_packages[sub].value,
            })
        if self.properties:
            ET.SubElement(root, TAG_PACKAGEPROPERTIES, dict(self.properties))

        ET.indent(root, space="    ")
        body = ET.tostring(root, encoding="unicode")
        return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'

    def save(self, path: str | Path) -> None:
        """原子写入元数据文件"""
        atomic_write(Path(path), self.to_xml())


def _read_filter(element: ET.Element) -> WorkspaceFilter:
    ws = WorkspaceFilter()
    for f_el in element:
        fs = PathFilterSet(f_el.get(ATTR_ROOT, ""))
        for rule in f_el:
            if ATTR_INCLUDE in rule.attrib:
                fs.rules.append(FilterRule(rule.attrib[ATTR_INCLUDE], True))
            elif ATTR_EXCLUDE in rule.attrib:
                fs.rules.append(FilterRule(rule.attrib[ATTR_EXCLUDE], False))
        ws.filter_sets.append(fs)
    return ws
