"""公共 fixture：生成测试用内容包"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from vaultpkg.core.archive import build_package
from vaultpkg.core.dep.models import Dependency, PackageId


@pytest.fixture()
def make_package(tmp_path: Path) -> Callable[..., Path]:
    """make_package("g:n:1.0", deps=["g:other:1.0"], files={...}) -> zip 路径"""
    out_dir = tmp_path / "incoming"

    def _make(package_id: str, deps: list[str] | None = None, **kwargs: object) -> Path:
        pid = PackageId.from_string(package_id)
        assert pid is not None
        dest = out_dir / pid.download_name
        kwargs.setdefault("files", {f"/apps/{pid.name}/content.txt": str(pid)})
        build_package(
            dest, pid,
            dependencies=Dependency.from_strings(deps or []),
            **kwargs,  # type: ignore[arg-type]
        )
        return dest

    return _make
