"""InstallState XML 持久化测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from vaultpkg.core.dep.models import Dependency, PackageId
from vaultpkg.core.dep.subpackage import SubPackageOption
from vaultpkg.core.exceptions import RegistryStateError
from vaultpkg.core.filter import FilterRule, PathFilterSet, WorkspaceFilter
from vaultpkg.core.registry.install_state import InstallState, PackageStatus


@pytest.fixture()
def full_state() -> InstallState:
    return InstallState(
        package_id=PackageId("g", "n", "1.0"),
        status=PackageStatus.EXTRACTED,
        file_path="g/n-1.0.zip",
        external=False,
        dependencies={
            Dependency.from_string("g:dep:[1.0,2.0)"),
            Dependency.from_string("other:lib"),
        },
        sub_packages={
            PackageId("g", "sub", "1.0"): SubPackageOption.EXTRACT,
            PackageId("g", "sub2", "1.0"): SubPackageOption.IGNORE,
        },
        install_time=1700000000000,
        size=1234,
        filter=WorkspaceFilter([
            PathFilterSet("/apps/x", [FilterRule("/apps/x/.*"), FilterRule(".*\\.tmp", False)]),
        ]),
        properties={"description": "demo <pkg> & co"},
    )


class TestRoundTrip:
    def test_all_fields(self, full_state: InstallState) -> None:
        loaded = InstallState.from_string(full_state.to_xml())
        assert loaded == full_state

    def test_minimal(self) -> None:
        state = InstallState(PackageId("", "n"), PackageStatus.REGISTERED)
        loaded = InstallState.from_string(state.to_xml())
        assert loaded == state
        assert loaded.install_time is None
        assert loaded.filter is None

    def test_external_flag(self) -> None:
        state = InstallState(PackageId("g", "n", "1"), PackageStatus.REGISTERED,
                             file_path="/abs/n-1.zip", external=True)
        assert InstallState.from_string(state.to_xml()).external is True

    def test_file(self, tmp_path: Path, full_state: InstallState) -> None:
        path = tmp_path / "meta" / "n-1.0.xml"
        full_state.save(path)
        assert InstallState.from_file(path) == full_state

    def test_xml_layout(self, full_state: InstallState) -> None:
        text = full_state.to_xml()
        assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert 'packagestatus="extracted"' in text
        assert 'installtime="1700000000000"' in text
        assert 'sphoption="EXTRACT"' in text


class TestRead:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert InstallState.from_file(tmp_path / "none.xml") is None

    def test_other_root_element(self) -> None:
        assert InstallState.from_string("<something/>") is None

    def test_syntax_error(self) -> None:
        with pytest.raises(RegistryStateError):
            InstallState.from_string("<registryMetadata")

    def test_unknown_child(self) -> None:
        text = ('<registryMetadata packageid="g:n:1" packagestatus="registered">'
                '<bogus/></registryMetadata>')
        with pytest.raises(RegistryStateError, match="bogus"):
            InstallState.from_string(text)

    def test_invalid_status(self) -> None:
        with pytest.raises(RegistryStateError):
            InstallState.from_string('<registryMetadata packageid="g:n:1" packagestatus="weird"/>')

    def test_missing_package_id(self) -> None:
        with pytest.raises(RegistryStateError):
            InstallState.from_string('<registryMetadata packagestatus="registered"/>')

    def test_is_installed(self) -> None:
        state = InstallState(PackageId("g", "n"), PackageStatus.EXTRACTED)
        assert state.is_installed
        state.status = PackageStatus.REGISTERED
        assert not state.is_installed
