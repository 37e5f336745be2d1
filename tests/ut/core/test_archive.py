"""内容包文件与过滤器测试"""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from vaultpkg.core.archive import (
    FILTER_ENTRY,
    PackageArchive,
    build_package,
    build_package_bytes,
)
from vaultpkg.core.dep.models import Dependency, PackageId
from vaultpkg.core.dep.subpackage import SubPackageHandling, SubPackageOption
from vaultpkg.core.exceptions import PackageError
from vaultpkg.core.filter import FilterRule, PathFilterSet, WorkspaceFilter


class TestPackageArchive:
    def test_read_back(self, tmp_path: Path) -> None:
        pid = PackageId("g", "n", "1.0")
        ws = WorkspaceFilter([PathFilterSet("/apps/n", [FilterRule("/apps/n/.*")])])
        dest = tmp_path / "n-1.0.zip"
        build_package(
            dest, pid,
            dependencies=Dependency.from_strings(["g:a:[1.0,2.0)", "g:b"]),
            files={"/apps/n/a.txt": "A", "/apps/n/b.bin": b"\x00\x01"},
            filter=ws,
            sub_package_handling=SubPackageHandling.from_string("g:sub;ignore"),
        )
        archive = PackageArchive.open(dest)
        assert archive.package_id == pid
        assert [str(d) for d in archive.dependencies] == ["g:a:[1.0,2.0)", "g:b"]
        assert sorted(archive.content_paths) == ["/apps/n/a.txt", "/apps/n/b.bin"]
        assert archive.filter == ws
        assert archive.sub_package_handling.get_option(PackageId("g", "sub")) is SubPackageOption.IGNORE
        assert archive.read_content("/apps/n/a.txt") == b"A"
        assert archive.properties["name"] == "n"

    def test_no_filter(self, tmp_path: Path) -> None:
        dest = tmp_path / "p.zip"
        build_package(dest, PackageId("g", "p", "1"))
        archive = PackageArchive.open(dest)
        assert archive.filter is None
        with zipfile.ZipFile(dest) as zf:
            assert FILTER_ENTRY not in zf.namelist()

    def test_embedded_sub_package(self) -> None:
        sub = PackageId("g", "sub", "1.0")
        data = build_package_bytes(
            PackageId("g", "parent", "1.0"),
            files={"/etc/packages/g/sub-1.0.zip": build_package_bytes(sub)},
        )
        archive = PackageArchive.from_bytes(data)
        assert [e.package_id for e in archive.sub_packages] == [sub]
        embedded = PackageArchive.from_bytes(archive.read_entry(archive.sub_packages[0].entry))
        assert embedded.package_id == sub

    def test_not_a_zip(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.zip"
        bad.write_text("not a zip", encoding="utf-8")
        with pytest.raises(PackageError):
            PackageArchive.open(bad)

    def test_missing_properties(self, tmp_path: Path) -> None:
        dest = tmp_path / "plain.zip"
        with zipfile.ZipFile(dest, "w") as zf:
            zf.writestr("jcr_root/a.txt", "x")
        with pytest.raises(PackageError, match="properties.xml"):
            PackageArchive.open(dest)

    def test_missing_content_root(self, tmp_path: Path) -> None:
        dest = tmp_path / "p.zip"
        build_package(dest, PackageId("g", "p", "1"))
        stripped = tmp_path / "stripped.zip"
        with zipfile.ZipFile(dest) as src, zipfile.ZipFile(stripped, "w") as out:
            for name in src.namelist():
                if not name.startswith("jcr_root"):
                    out.writestr(name, src.read(name))
        with pytest.raises(PackageError, match="jcr_root"):
            PackageArchive.open(stripped)

    def test_invalid_name(self, tmp_path: Path) -> None:
        dest = tmp_path / "p.zip"
        build_package(dest, PackageId("g", "a*b", "1"))
        with pytest.raises(PackageError):
            PackageArchive.open(dest)


class TestWorkspaceFilter:
    def test_no_rules_covers_root(self) -> None:
        fs = PathFilterSet("/apps/x")
        assert fs.contains("/apps/x")
        assert fs.contains("/apps/x/y/z")
        assert not fs.contains("/apps/xy")

    def test_include_first_defaults_to_exclude(self) -> None:
        fs = PathFilterSet("/apps", [FilterRule("/apps/a/.*")])
        assert fs.contains("/apps/a/f.txt")
        assert not fs.contains("/apps/b/f.txt")

    def test_exclude_first_defaults_to_include(self) -> None:
        fs = PathFilterSet("/apps", [FilterRule(".*\\.tmp", False)])
        assert fs.contains("/apps/f.txt")
        assert not fs.contains("/apps/f.tmp")

    def test_last_matching_rule_wins(self) -> None:
        fs = PathFilterSet("/", [FilterRule("/a/.*"), FilterRule("/a/secret/.*", False)])
        assert fs.contains("/a/x")
        assert not fs.contains("/a/secret/x")

    def test_list_round_trip(self) -> None:
        ws = WorkspaceFilter([
            PathFilterSet("/apps", [FilterRule("/apps/.*"), FilterRule(".*\\.tmp", False)]),
            PathFilterSet("/content"),
        ])
        assert WorkspaceFilter.from_list(ws.to_list()) == ws
        assert WorkspaceFilter.from_list(None) is None
        assert ws.roots == ["/apps", "/content"]
