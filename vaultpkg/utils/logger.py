"""vaultpkg 日志配置

两种输出格式:
- 文本: 时间戳 + 级别 + logger 名 + 消息，面向终端
- JSON: 每行一条结构化记录，面向 CI / 日志采集

级别与格式可由环境变量 VAULTPKG_LOG_LEVEL / VAULTPKG_LOG_JSON 控制。
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

ENV_LOG_LEVEL = "VAULTPKG_LOG_LEVEL"
ENV_LOG_JSON = "VAULTPKG_LOG_JSON"

TEXT_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"

# 调用方通过 extra={"package_id": ...} 附带的上下文字段
_CONTEXT_FIELDS = ("package_id", "task_type")


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志格式器

    输出字段: timestamp, level, logger, message, module, function, line，
    以及可选的 package_id / task_type / exception。
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = str(value)
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _clear_handlers(root: logging.Logger) -> None:
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器，输出到 stderr

    参数:
        level: 日志级别字符串（DEBUG, INFO, WARNING, ERROR）；无法识别时退回 INFO
        json_output: True 时使用 JSONFormatter

    重复调用会先清理已有 handlers，不会产生重复输出。
    """
    root = logging.getLogger()
    _clear_handlers(root)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)


def setup_logging_from_env() -> None:
    """按环境变量配置日志（CLI 入口使用）"""
    setup_logging(
        level=os.getenv(ENV_LOG_LEVEL, "INFO"),
        json_output=os.getenv(ENV_LOG_JSON, "") == "1",
    )


def reset_logging() -> None:
    """清理根日志器的所有 handlers（测试用）"""
    _clear_handlers(logging.getLogger())
