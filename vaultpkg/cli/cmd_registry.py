"""CLI：注册表与依赖查询命令"""

from __future__ import annotations

import click

from vaultpkg.cli import _parse_id, _svc


def register(group: click.Group) -> None:
    group.add_command(register_pkg)
    group.add_command(remove_pkg)
    group.add_command(list_pkgs)
    group.add_command(info)
    group.add_command(deps)
    group.add_command(usage)
    group.add_command(resolve_dep)
    group.add_command(order)
    group.add_command(build_pkg)


# ---- 注册 / 删除 ----

@click.command(name="register")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--external", is_flag=True, help="只登记路径，不复制包文件")
@click.option("--replace", is_flag=True, help="标识已存在时替换")
def register_pkg(file: str, external: bool, replace: bool) -> None:
    """注册包文件"""
    registry = _svc().registry
    if external:
        pid = registry.register_external(file, replace=replace)
    else:
        pid = registry.register(file, replace=replace)
    click.echo(f"已注册: {pid}")


@click.command(name="remove")
@click.argument("package_id")
def remove_pkg(package_id: str) -> None:
    """删除已注册的包"""
    pid = _parse_id(package_id)
    _svc().registry.remove(pid)
    click.echo(f"已删除: {pid}")


# ---- 查询 ----

@click.command(name="list")
@click.option("--installed", is_flag=True, help="只列出已安装的包")
def list_pkgs(installed: bool) -> None:
    """列出所有已注册的包"""
    registry = _svc().registry
    ids = sorted(registry.packages())
    if not ids:
        click.echo("没有已注册的包。")
        return
    for pid in ids:
        pkg = registry.open(pid)
        if pkg is None or (installed and not pkg.is_installed):
            continue
        ext = " [external]" if pkg.external else ""
        click.echo(f"  {str(pid):50s} {pkg.status.value.lower():10s}{ext}")


@click.command()
@click.argument("package_id")
def info(package_id: str) -> None:
    """显示包的登记信息"""
    from vaultpkg.core.exceptions import NoSuchPackageError

    pid = _parse_id(package_id)
    pkg = _svc().registry.open(pid)
    if pkg is None:
        raise NoSuchPackageError(pid)
    click.echo(f"标识:     {pkg.id}")
    click.echo(f"状态:     {pkg.status.value.lower()}")
    click.echo(f"文件:     {pkg.file_path}{' (external)' if pkg.external else ''}")
    click.echo(f"大小:     {pkg.size}")
    if pkg.install_time is not None:
        click.echo(f"安装时间: {pkg.install_time}")
    for dep in pkg.dependencies:
        click.echo(f"依赖:     {dep}")
    for sub, option in sorted(pkg.sub_packages.items()):
        click.echo(f"子包:     {sub} ({option.value.lower()})")


@click.command()
@click.argument("package_id")
@click.option("--installed", is_flag=True, help="只用已安装的包解析依赖")
def deps(package_id: str, installed: bool) -> None:
    """分析包的依赖是否可解析"""
    report = _svc().registry.analyze_dependencies(_parse_id(package_id), installed)
    for pid in report.resolved:
        click.echo(f"  [ok]      {pid}")
    for dep in report.unresolved:
        click.echo(f"  [missing] {dep}")
    if not report.is_satisfied:
        raise SystemExit(1)


@click.command()
@click.argument("package_id")
def usage(package_id: str) -> None:
    """列出依赖该包的已注册包"""
    users = _svc().registry.usage(_parse_id(package_id))
    if not users:
        click.echo("没有包依赖它。")
        return
    for pid in users:
        click.echo(f"  {pid}")


@click.command(name="resolve")
@click.argument("dependency")
@click.option("--installed", is_flag=True, help="只在已安装的包中查找")
def resolve_dep(dependency: str, installed: bool) -> None:
    """查找满足依赖声明的最高版本包"""
    from vaultpkg.core.dep.models import Dependency
    dep = Dependency.from_string(dependency.strip())
    if dep is None:
        raise click.BadParameter(f"无效的依赖声明: {dependency!r}")
    pid = _svc().registry.resolve(dep, installed)
    if pid is None:
        click.echo(f"无法解析: {dep}")
        raise SystemExit(1)
    click.echo(str(pid))


@click.command()
@click.argument("package_ids", nargs=-1, required=True)
def order(package_ids: tuple[str, ...]) -> None:
    """按依赖关系给出安装顺序"""
    from vaultpkg.core.dep.resolver import resolve_order
    from vaultpkg.core.exceptions import NoSuchPackageError
    registry = _svc().registry
    mapping = {}
    for raw in package_ids:
        pid = _parse_id(raw)
        pkg = registry.open(pid)
        if pkg is None:
            raise NoSuchPackageError(pid)
        mapping[pid] = pkg.dependencies
    for idx, pid in enumerate(resolve_order(mapping), 1):
        click.echo(f"  {idx}. {pid}")


# ---- 打包 ----

@click.command(name="build-package")
@click.argument("content_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("output", type=click.Path(dir_okay=False))
@click.option("--id", "package_id", required=True, help="包标识 group:name:version")
@click.option("--dep", "dependencies", multiple=True, help="依赖声明（可多次指定）")
@click.option("--root", "roots", multiple=True, help="过滤器根路径（可多次指定）")
def build_pkg(
    content_dir: str, output: str, package_id: str,
    dependencies: tuple[str, ...], roots: tuple[str, ...],
) -> None:
    """把目录打成内容包（目录即仓库根）"""
    from pathlib import Path

    from vaultpkg.core.archive import build_package
    from vaultpkg.core.dep.models import Dependency
    from vaultpkg.core.filter import WorkspaceFilter

    base = Path(content_dir)
    files = {
        "/" + p.relative_to(base).as_posix(): p.read_bytes()
        for p in sorted(base.rglob("*")) if p.is_file()
    }
    pid = _parse_id(package_id)
    build_package(
        output, pid,
        dependencies=Dependency.from_strings(dependencies),
        files=files,
        filter=WorkspaceFilter.from_roots(*roots) if roots else None,
    )
    click.echo(f"已生成: {output} ({pid}, {len(files)} 个文件)")
