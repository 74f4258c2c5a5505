"""
logger.py

Process-wide logging for the batch service and the CLI.

- `GROQ_STT_LOG_DIR` unset: records go to stderr.
- `GROQ_STT_LOG_DIR` set: records go to `<dir>/groq_stt.log`. At midnight UTC the
  file is rolled into `<dir>/daily_logs/YYYY-MM-DD.log` (`_1`, `_2`, ... when a day
  is rolled more than once) and only the newest 14 archives are kept.
- `LOG_LEVEL` picks the level (default INFO); `set_level()` changes it at runtime.
- Format: `%(asctime)s | %(levelname)s | %(name)s | %(message)s`

"""

import logging
import os
import re
import shutil
import sys
from dataclasses import dataclass
from datetime import datetime, time as dtime
from logging.handlers import TimedRotatingFileHandler
from typing import Dict, List, Optional, Protocol
from zoneinfo import ZoneInfo

# -----------------------------
# Configuration & Contracts
# -----------------------------

@dataclass(frozen=True)
class LoggerConfig:
    """
    Immutable configuration for the logging system.
    """
    log_dir_env: str = "GROQ_STT_LOG_DIR"
    log_level_env: str = "LOG_LEVEL"
    default_level: str = "INFO"
    main_log_filename: str = "groq_stt.log"
    daily_logs_subdir: str = "daily_logs"
    prune_keep: int = 14
    rotate_tz: str = "UTC"
    date_filename_regex: str = r"^\d{4}-\d{2}-\d{2}(?:_\d+)?\.log$"
    formatter: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    formatter_datefmt: str = "%Y-%m-%d %H:%M:%S"


class FileSystem(Protocol):
    """
    File operations needed by archiving and pruning, kept behind a seam for tests.
    """
    def listdir(self, path: str) -> List[str]: ...
    def exists(self, path: str) -> bool: ...
    def getmtime(self, path: str) -> float: ...
    def move(self, src: str, dst: str) -> None: ...
    def remove(self, path: str) -> None: ...
    def makedirs(self, path: str, exist_ok: bool = True) -> None: ...


class LocalFileSystem:
    listdir = staticmethod(os.listdir)
    exists = staticmethod(os.path.exists)
    getmtime = staticmethod(os.path.getmtime)
    move = staticmethod(shutil.move)
    remove = staticmethod(os.remove)

    @staticmethod
    def makedirs(path: str, exist_ok: bool = True) -> None:
        os.makedirs(path, exist_ok=exist_ok)


# -----------------------------
# Log file layout, archiving and pruning
# -----------------------------

class PathResolver:
    """Where the live log and its daily archives live under one log directory."""

    def __init__(self, log_dir: str, cfg: LoggerConfig, fs: FileSystem) -> None:
        self.log_file = os.path.join(log_dir, cfg.main_log_filename)
        self.daily_logs_dir = os.path.join(log_dir, cfg.daily_logs_subdir)
        # daily_logs sits inside log_dir, so one call creates both
        fs.makedirs(self.daily_logs_dir, exist_ok=True)


class DailyLogPruner:
    """
    Deletes archived daily logs beyond the newest `keep`, judged by mtime.
    Files that do not look like archives are left alone.
    """
    def __init__(self, fs: FileSystem, daily_dir: str, pattern: re.Pattern, keep: int) -> None:
        self._fs = fs
        self._daily_dir = daily_dir
        self._pattern = pattern
        self._keep = keep

    def _archives(self) -> List[str]:
        try:
            names = self._fs.listdir(self._daily_dir)
        except FileNotFoundError:
            return []
        return [os.path.join(self._daily_dir, n) for n in names if self._pattern.match(n)]

    def _mtime(self, path: str) -> float:
        try:
            return self._fs.getmtime(path)
        except FileNotFoundError:
            return float("-inf")

    def prune(self) -> None:
        newest_first = sorted(self._archives(), key=self._mtime, reverse=True)
        for stale in newest_first[self._keep:]:
            try:
                self._fs.remove(stale)
            except OSError:
                # already gone or not removable; pruning is best effort
                continue


class DateBasedRotator:
    """
    `TimedRotatingFileHandler.rotator` that archives the rolled file under a
    `YYYY-MM-DD.log` name (suffixed `_N` on clashes) and prunes old archives.
    The handler's own `dest` name is ignored.
    """

    def __init__(self, fs: FileSystem, daily_dir: str, prune: DailyLogPruner, tz: ZoneInfo) -> None:
        self._fs = fs
        self._daily_dir = daily_dir
        self._prune = prune
        self._tz = tz

    def archive_path(self, source: str) -> Optional[str]:
        try:
            day = datetime.fromtimestamp(self._fs.getmtime(source), tz=self._tz).strftime("%Y-%m-%d")
        except FileNotFoundError:
            return None

        candidate, n = f"{day}.log", 0
        while self._fs.exists(os.path.join(self._daily_dir, candidate)):
            n += 1
            candidate = f"{day}_{n}.log"
        return os.path.join(self._daily_dir, candidate)

    def __call__(self, source: str, dest: str) -> None:
        target = self.archive_path(source)
        if target is None:
            return
        try:
            self._fs.move(source, target)
        except OSError:
            # the live log keeps going even if archiving fails
            return
        self._prune.prune()


# -----------------------------
# Factory
# -----------------------------

class LoggerFactory:
    def __init__(self, cfg: LoggerConfig, fs: Optional[FileSystem] = None) -> None:
        self._cfg = cfg
        self._fs = fs or LocalFileSystem()
        self._level = self._level_from_env()
        self._named: Dict[str, logging.Logger] = {}

        root = logging.getLogger()
        if any(getattr(h, "_is_shared", False) for h in root.handlers):
            return
        handler = self._file_handler(os.environ[cfg.log_dir_env]) if os.getenv(cfg.log_dir_env) \
            else logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(cfg.formatter, datefmt=cfg.formatter_datefmt))
        handler._is_shared = True
        root.addHandler(handler)
        root.setLevel(self._level)

    def _level_from_env(self) -> int:
        level = logging.getLevelName((os.getenv(self._cfg.log_level_env) or self._cfg.default_level).upper())
        return level if isinstance(level, int) else logging.INFO

    def _file_handler(self, log_dir: str) -> TimedRotatingFileHandler:
        paths = PathResolver(log_dir, self._cfg, self._fs)
        tz = ZoneInfo(self._cfg.rotate_tz)
        handler = TimedRotatingFileHandler(
            paths.log_file,
            when="midnight",
            backupCount=0,
            encoding="utf-8",
            utc=True,
            atTime=dtime(0, 0, tzinfo=tz),
        )
        pruner = DailyLogPruner(self._fs, paths.daily_logs_dir, re.compile(self._cfg.date_filename_regex),
                                self._cfg.prune_keep)
        handler.rotator = DateBasedRotator(self._fs, paths.daily_logs_dir, pruner, tz)
        return handler

    def get_logger(self, name: str, level: Optional[int] = None) -> logging.Logger:
        logger = logging.getLogger(name)
        logger.setLevel(self._level if level is None else level)
        # records flow to the shared root handler only
        logger.handlers.clear()
        logger.propagate = True
        self._named[name] = logger
        return logger

    def set_level(self, level: int) -> None:
        self._level = level
        logging.getLogger().setLevel(level)
        for logger in self._named.values():
            logger.setLevel(level)


# -----------------------------
# Public API
# -----------------------------

__LOGGER_FACTORY = LoggerFactory(LoggerConfig())

def get_logger(name: str = "groq_stt", level: Optional[int] = None) -> logging.Logger:
    return __LOGGER_FACTORY.get_logger(name=name, level=level)

def set_level(level: str) -> None:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    __LOGGER_FACTORY.set_level(resolved)
