"""文件读写工具

- atomic_write: 同目录临时文件 + os.replace，元数据 XML 与 YAML 共用
- load_yaml / save_yaml: 配置文件、执行计划文件的读写
- parse_yaml / dump_yaml: 内存字符串形式，用于执行计划的导入导出
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 单个 YAML 文件最大 10MB
MAX_YAML_SIZE = 10 * 1024 * 1024


def atomic_write(path: Path, content: str | bytes) -> None:
    """原子写入文件，读者只会看到旧内容或完整的新内容

    异常:
        OSError: 写入或替换失败（临时文件已清理）
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        if isinstance(content, bytes):
            with os.fdopen(fd, "wb") as f:
                f.write(content)
        else:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
        os.replace(tmp, str(path))
    except Exception:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def parse_yaml(text: str, source: str = "<string>") -> dict[str, Any]:
    """解析 YAML 字符串，空内容或非字典返回 {}"""
    try:
        result = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.error("解析 YAML 失败: %s, 错误: %s", source, e)
        raise
    if result is None:
        return {}
    if not isinstance(result, dict):
        logger.warning(
            "%s 内容不是字典类型 (实际类型: %s)，返回空字典",
            source, type(result).__name__,
        )
        return {}
    return result


def dump_yaml(data: Any) -> str:
    """序列化为 YAML 字符串，保持键顺序"""
    return yaml.dump(
        data, default_flow_style=False,
        allow_unicode=True, sort_keys=False,
    )


def load_yaml(path: str | Path) -> dict[str, Any]:
    """读取 YAML 文件

    文件不存在、为空或内容不是字典时返回 {}。

    异常:
        ValueError: 文件超过 MAX_YAML_SIZE
        yaml.YAMLError: 格式错误
    """
    p = Path(path)
    if not p.exists():
        return {}
    file_size = p.stat().st_size
    if file_size > MAX_YAML_SIZE:
        raise ValueError(
            f"YAML 文件过大: {p} ({file_size} 字节), "
            f"超过限制 {MAX_YAML_SIZE} 字节"
        )
    return parse_yaml(p.read_text(encoding="utf-8"), source=str(p))


def save_yaml(path: str | Path, data: Any) -> None:
    """原子写入 YAML 文件，自动创建父目录"""
    p = Path(path)
    try:
        atomic_write(p, dump_yaml(data))
    except yaml.YAMLError as e:
        logger.error("序列化 YAML 数据失败: %s, 错误: %s", path, e)
        raise
    except OSError as e:
        logger.error("写入文件失败: %s, 错误: %s", path, e)
        raise
