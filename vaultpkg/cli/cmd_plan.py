"""CLI：执行计划命令"""

from __future__ import annotations

import click

from vaultpkg.cli import _parse_id, _svc


def register(group: click.Group) -> None:
    group.add_command(plan_group)


def _parse_task_specs(specs: tuple[str, ...]) -> list[tuple[str, str]]:
    """解析 cmd=packageId 形式的任务参数"""
    result: list[tuple[str, str]] = []
    for spec in specs:
        if "=" not in spec:
            raise click.BadParameter(f"任务格式应为 cmd=packageId: {spec!r}")
        cmd, pid = spec.split("=", 1)
        result.append((cmd.strip(), pid.strip()))
    return result


@click.group(name="plan")
def plan_group() -> None:
    """执行计划：创建、查看、执行"""


@plan_group.command(name="create")
@click.argument("output", type=click.Path(dir_okay=False))
@click.option("--task", "-t", "tasks", multiple=True, required=True,
              help="任务 cmd=packageId，cmd 为 install/extract/uninstall/add/remove")
@click.option("--dry-run", is_flag=True, help="为所有任务设置 dryRun 选项")
def plan_create(output: str, tasks: tuple[str, ...], dry_run: bool) -> None:
    """生成执行计划文件（不校验、不执行）"""
    from vaultpkg.core.plan.models import ImportOptions, TaskType
    builder = _svc().plan_builder()
    for cmd, raw_id in _parse_task_specs(tasks):
        try:
            task_type = TaskType(cmd.upper())
        except ValueError as e:
            raise click.BadParameter(f"未知的任务类型: {cmd}") from e
        options = ImportOptions(dry_run=True) if dry_run else None
        builder.add_task(_parse_id(raw_id), task_type, options)
    builder.save(output)
    click.echo(f"执行计划已保存: {output} ({len(builder.tasks)} 个任务)")


@plan_group.command(name="show")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
def plan_show(plan_file: str) -> None:
    """校验并显示执行计划"""
    builder = _svc().plan_builder().load(plan_file)
    plan = builder.validate()
    for idx, task in enumerate(plan.tasks, 1):
        click.echo(f"  {idx}. {task}")
    click.echo("校验通过。")


@plan_group.command(name="run")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
def plan_run(plan_file: str) -> None:
    """执行计划文件；有任务失败时以状态码 1 退出"""
    builder = _svc().plan_builder().load(plan_file)
    plan = builder.execute()
    for task in plan.tasks:
        line = f"  [{task.state.value.lower():9s}] {task}"
        if task.error is not None:
            line += f": {task.error}"
        click.echo(line)
    summary = plan.summary()
    click.echo(f"完成: {summary['COMPLETED']}，失败: {summary['ERROR']}")
    if plan.has_errors():
        raise SystemExit(1)
