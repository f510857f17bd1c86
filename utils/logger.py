"""
日志管理模块

功能：
- 控制台日志与文件日志（按日期/小时轮转）
- 文本或结构化(JSON)格式
- 按配置段一次性配置 core / tracker 日志树
"""

import json
import logging
import sys
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional


class LoggerConfigError(Exception):
    """日志配置错误"""
    pass


class JsonFormatter(logging.Formatter):
    """JSON格式日志格式化器"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage()
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """文本格式日志格式化器"""

    DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] %(message)s"

    def __init__(self, fmt: Optional[str] = None):
        super().__init__(
            fmt=fmt or self.DEFAULT_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S"
        )


class Logger:
    """
    日志管理器

    包装一个命名的 logging.Logger，负责挂载处理器。
    模块内部仍使用 logging.getLogger(__name__)，由父级 logger 统一输出。
    """

    LEVEL_MAP = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL
    }

    ROTATION_MAP = {
        "daily": "midnight",
        "hourly": "H",
    }

    def __init__(self, name: str, level: str = "INFO"):
        """
        Args:
            name: Logger名称
            level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)

        Raises:
            LoggerConfigError: 无效的日志级别
        """
        level = self._check_level(level)

        self.name = name
        self.level = level
        self._logger = logging.getLogger(name)
        self._logger.setLevel(self.LEVEL_MAP[level])

        # 清除已有处理器（避免重复输出）
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()
        self._logger.propagate = False

    @classmethod
    def _check_level(cls, level: str) -> str:
        level = str(level).upper()
        if level not in cls.LEVEL_MAP:
            raise LoggerConfigError(f"无效的日志级别: {level}. 有效值: {list(cls.LEVEL_MAP.keys())}")
        return level

    @staticmethod
    def _make_formatter(format: str) -> logging.Formatter:
        if format == "json":
            return JsonFormatter()
        if format == "text":
            return TextFormatter()
        raise LoggerConfigError(f"无效的日志格式: {format}")

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def add_console_handler(self, format: str = "text") -> "Logger":
        """
        添加控制台处理器

        Args:
            format: 格式类型 ("text", "json")

        Returns:
            Logger: 自身，支持链式调用
        """
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(self.LEVEL_MAP[self.level])
        handler.setFormatter(self._make_formatter(format))
        self._logger.addHandler(handler)
        return self

    def add_file_handler(
        self,
        path: str,
        rotation: str = "none",
        format: str = "text",
        backup_count: int = 7
    ) -> "Logger":
        """
        添加文件处理器

        Args:
            path: 日志文件路径
            rotation: 轮转策略 ("none", "daily", "hourly")
            format: 格式类型 ("text", "json")
            backup_count: 保留的备份文件数量

        Returns:
            Logger: 自身，支持链式调用
        """
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        if rotation in self.ROTATION_MAP:
            handler = TimedRotatingFileHandler(
                path,
                when=self.ROTATION_MAP[rotation],
                interval=1,
                backupCount=backup_count,
                encoding="utf-8"
            )
        elif rotation == "none":
            handler = logging.FileHandler(path, encoding="utf-8")
        else:
            raise LoggerConfigError(f"无效的轮转策略: {rotation}")

        handler.setLevel(self.LEVEL_MAP[self.level])
        handler.setFormatter(self._make_formatter(format))
        self._logger.addHandler(handler)
        return self

    def close(self) -> None:
        """关闭并移除所有处理器"""
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()


def setup_logging(
    config: Optional[Dict[str, Any]] = None,
    names: Iterable[str] = ("core", "tracker"),
) -> List[Logger]:
    """
    按配置段配置日志

    Args:
        config: logging 配置段 {level, format, file, rotation}
        names: 需要配置的顶层 logger 名称

    Returns:
        List[Logger]: 已配置的日志管理器
    """
    config = config or {}
    level = config.get("level", "INFO")
    format = config.get("format", "text")
    file_path = config.get("file")
    rotation = config.get("rotation", "none")

    loggers = []
    for name in names:
        manager = Logger(name, level=level).add_console_handler(format=format)
        if file_path:
            manager.add_file_handler(file_path, rotation=rotation, format=format)
        loggers.append(manager)
    return loggers
