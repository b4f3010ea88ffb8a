"""
CMTrace log sink.

Every record of the hp_bios_config logger tree is appended to a flat log file
in the layout CMTrace and the ConfigMgr log viewers parse:

<![LOG[message]LOG]!><time="HH:MM:SS.mmm+ooo" date="MM-DD-YYYY" component="HPBIOSConfig" context="DOMAIN\\user" type="1" thread="PID" file="">

type is 1 for info, 2 for warning and 3 for error. The time offset is the
local UTC offset in minutes.
"""
import logging
import os
import sys
from datetime import datetime
from typing import Optional

from .utils import current_user

log = logging.getLogger("hp_bios_config.logsink")

COMPONENT = "HPBIOSConfig"
LOG_FILE_NAME = "HPBIOSConfig.log"
TS_LOG_PATH_VARIABLE = "_SMSTSLogPath"


def severity(levelno: int) -> int:
    """Map a logging level to the CMTrace type column"""
    if levelno >= logging.ERROR:
        return 3
    if levelno >= logging.WARNING:
        return 2
    return 1


class CMTraceFormatter(logging.Formatter):
    """Formats records as single CMTrace lines"""

    def __init__(self, component: str = COMPONENT, context: Optional[str] = None):
        super().__init__()
        self.component = component
        self.context = context or current_user()

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).astimezone()
        offset = int(stamp.utcoffset().total_seconds() // 60)
        sign = "+" if offset >= 0 else "-"
        time_part = f"{stamp:%H:%M:%S}.{int(record.msecs):03d}{sign}{abs(offset):03d}"
        message = record.getMessage().replace("\n", " ").strip()
        if record.exc_info:
            message = f"{message} {self.formatException(record.exc_info)}".replace("\n", " ")
        return (
            f'<![LOG[{message}]LOG]!>'
            f'<time="{time_part}" date="{stamp:%m-%d-%Y}" component="{self.component}" '
            f'context="{self.context}" type="{severity(record.levelno)}" '
            f'thread="{record.process}" file="">'
        )


def task_sequence_log_dir() -> Optional[str]:
    """
    Log directory of a running ConfigMgr/MDT task sequence, if any.

    The environment variable wins; otherwise the task sequence COM object is
    asked, which only exists while a task sequence is running.
    """
    value = os.environ.get(TS_LOG_PATH_VARIABLE)
    if value:
        return value
    if sys.platform != "win32":
        return None
    try:
        import win32com.client

        ts_env = win32com.client.Dispatch("Microsoft.SMS.TSEnvironment")
        value = ts_env.Value(TS_LOG_PATH_VARIABLE)
    except Exception as e:
        log.debug(f"Not running in a task sequence: {e}")
        return None
    return value or None


def default_log_dir() -> str:
    program_data = os.environ.get("ProgramData", r"C:\ProgramData")
    return os.path.join(program_data, "HP", "Logs")


def resolve_log_dir(override: Optional[str] = None) -> str:
    """Explicit directory, then task sequence log path, then the HP default"""
    if override:
        return override
    return task_sequence_log_dir() or default_log_dir()


def attach_log_sink(log_dir: Optional[str] = None,
                    logger_name: str = "hp_bios_config") -> logging.FileHandler:
    """Append CMTrace records for logger_name to <log_dir>/HPBIOSConfig.log"""
    directory = resolve_log_dir(log_dir)
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, LOG_FILE_NAME)

    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(CMTraceFormatter())
    handler.setLevel(logging.INFO)
    logging.getLogger(logger_name).addHandler(handler)
    log.debug(f"Log sink attached: {path}")
    return handler


def detach_log_sink(handler: logging.Handler, logger_name: str = "hp_bios_config"):
    logging.getLogger(logger_name).removeHandler(handler)
    handler.close()
