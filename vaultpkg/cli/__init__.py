"""vaultpkg 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
业务异常（VaultPackageError）统一转换为带错误码的友好提示。
"""

from __future__ import annotations

from typing import Any

import click

from vaultpkg import __version__
from vaultpkg.core.config import DEFAULT_CONFIG_FILE, init_config
from vaultpkg.core.dep.models import PackageId
from vaultpkg.core.exceptions import VaultPackageError
from vaultpkg.services.container import get_container, reset_container
from vaultpkg.utils.logger import setup_logging_from_env


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


def _parse_id(value: str) -> PackageId:
    """解析命令行中的包标识，空串报参数错误"""
    pid = PackageId.from_string(value.strip())
    if pid is None:
        raise click.BadParameter(f"无效的包标识: {value!r}")
    return pid


class _VaultGroup(click.Group):
    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except VaultPackageError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e


@click.group(cls=_VaultGroup)
@click.version_option(version=__version__)
@click.option(
    "--config", "config_path", default=DEFAULT_CONFIG_FILE,
    show_default=True, help="配置文件路径（不存在时使用默认配置）",
)
def main(config_path: str) -> None:
    """vaultpkg - 内容包注册、依赖分析与执行计划"""
    setup_logging_from_env()
    init_config(config_path)
    reset_container()


# 注册各领域子命令
from vaultpkg.cli.cmd_plan import register as _reg_plan  # noqa: E402
from vaultpkg.cli.cmd_registry import register as _reg_registry  # noqa: E402

_reg_registry(main)
_reg_plan(main)
