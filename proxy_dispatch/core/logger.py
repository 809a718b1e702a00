"""
统一日志 - 基于 loguru

日志级别约定:
- DEBUG: 每次尝试的细节、存储解析失败等被吞掉的问题
- INFO:  分发开始/成功、槽位获取
- WARNING: 单次尝试失败、准入降级、内容被拒绝
- ERROR: 所有尝试耗尽

输出:
- 控制台: LOG_LEVEL 控制（容器内默认 INFO，否则 DEBUG）
- 文件: logs/app.log 保存 DEBUG 及以上，logs/error.log 仅 ERROR；
  LOG_DISABLE_FILE=true 时关闭（测试环境）

凭据永远不要完整写入日志，只记录末尾几位（见 Credential.masked）。

使用方式:
    from proxy_dispatch.core.logger import logger
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from loguru import logger

IS_DOCKER = (
    os.path.exists("/.dockerenv")
    or os.environ.get("DOCKER_CONTAINER", "false").lower() == "true"
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if not IS_DOCKER else "INFO").upper()

DISABLE_FILE_LOG = os.getenv("LOG_DISABLE_FILE", "false").lower() == "true"

LOG_DIR = Path(os.getenv("LOG_DIR", Path(__file__).resolve().parent.parent.parent / "logs"))

CONSOLE_FORMAT_DEV = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{message}</cyan>"
)

CONSOLE_FORMAT_PROD = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

logger.remove()

logger.add(
    sys.stdout,
    format=CONSOLE_FORMAT_PROD if IS_DOCKER else CONSOLE_FORMAT_DEV,
    level=LOG_LEVEL,
    colorize=not IS_DOCKER,
    backtrace=not IS_DOCKER,
    diagnose=not IS_DOCKER,
)

if not DISABLE_FILE_LOG:
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    file_log_config = {
        "format": FILE_FORMAT,
        "rotation": "100 MB",
        "retention": "30 days",
        "compression": "gz",
        "enqueue": False,
        "encoding": "utf-8",
        "catch": True,
    }
    if IS_DOCKER:
        file_log_config["backtrace"] = False
        file_log_config["diagnose"] = False

    logger.add(  # type: ignore[call-overload]
        LOG_DIR / "app.log",
        level="DEBUG",
        **file_log_config,
    )

    error_log_config = file_log_config.copy()
    error_log_config["rotation"] = "50 MB"
    logger.add(  # type: ignore[call-overload]
        LOG_DIR / "error.log",
        level="ERROR",
        **error_log_config,
    )

# httpx 每个请求都会打 INFO，压到 WARNING
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

__all__ = ["logger"]
