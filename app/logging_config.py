import datetime
import logging
import shutil
from pathlib import Path
from typing import Callable, TextIO
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .settings import settings

_LOGGING_CONFIGURED = False

APP_LOGGER_NAME = "fusion"


def _resolve_tzinfo(timezone_name: str | None) -> datetime.tzinfo:
    if timezone_name:
        try:
            return ZoneInfo(timezone_name)
        except ZoneInfoNotFoundError:
            pass
    # Fallback to system local timezone
    return datetime.datetime.now().astimezone().tzinfo or datetime.timezone.utc


class LocalTimezoneFormatter(logging.Formatter):
    """
    Logging formatter that forces timestamps into a configured timezone.
    Defaults to the system local timezone when LOG_TIMEZONE is not set
    or when the provided timezone is invalid.
    """

    def __init__(self, *args, timezone_name: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._tzinfo = _resolve_tzinfo(timezone_name)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.datetime.fromtimestamp(record.created, tz=self._tzinfo)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(timespec="milliseconds")


def _project_root() -> Path:
    # app/logging_config.py -> app -> repo root
    return Path(__file__).resolve().parents[1]


def _resolve_log_dir(value: str | Path) -> Path:
    p = value if isinstance(value, Path) else Path(value)
    if p.is_absolute():
        return p
    return _project_root() / p


def infer_log_business(record: logging.LogRecord) -> str:
    """
    Best-effort mapping from a log record back to a "business bucket".

    Most modules import the shared `logger` instance (name always "fusion"),
    so the callsite path decides which file a record lands in.
    """
    name = record.name or ""
    if name.startswith("uvicorn.access"):
        return "access"
    if name.startswith(("uvicorn.error", "uvicorn")):
        return "server"

    path = (record.pathname or "").replace("\\", "/")
    if "/app/transfer/" in path or "/app/services/config_transfer" in path:
        return "transfer"
    if "/app/api/v1/admin_config_transfer_routes.py" in path:
        return "transfer"
    if "/app/services/config_" in path or "/app/api/v1/admin_config_routes.py" in path:
        return "config"
    if "/app/db/" in path:
        return "db"

    return "app"


def _cleanup_dated_dirs(log_dir: Path, backup_days: int) -> None:
    if backup_days <= 0:
        return
    try:
        dirs = [p for p in log_dir.iterdir() if p.is_dir()]
    except OSError:
        return

    dated: list[tuple[datetime.date, Path]] = []
    for p in dirs:
        try:
            day = datetime.date.fromisoformat(p.name)
        except ValueError:
            continue
        dated.append((day, p))

    dated.sort(key=lambda x: x[0])
    if len(dated) <= backup_days:
        return
    for _, old_dir in dated[: len(dated) - backup_days]:
        try:
            shutil.rmtree(old_dir)
        except OSError:
            pass


class DailyFolderFileHandler(logging.Handler):
    """
    Writes logs to: <log_dir>/<YYYY-MM-DD>/<filename>
    and keeps at most backup_days date folders.
    """

    def __init__(
        self,
        log_dir: Path,
        filename: str,
        backup_days: int = 7,
        encoding: str = "utf-8",
        timezone_name: str | None = None,
        now_fn: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        super().__init__()
        self.log_dir = log_dir
        self.filename = filename
        self.backup_days = backup_days
        self.encoding = encoding
        self.terminator = "\n"
        self._tzinfo = _resolve_tzinfo(timezone_name)
        # now_fn is mainly for tests.
        self._now_fn = now_fn
        self._current_date: datetime.date | None = None
        self._stream: TextIO | None = None
        self._ensure_stream()

    def _today(self) -> datetime.date:
        now = self._now_fn() if self._now_fn is not None else datetime.datetime.now(tz=self._tzinfo)
        if now.tzinfo is None:
            now = now.replace(tzinfo=self._tzinfo)
        return now.date()

    def _ensure_stream(self) -> None:
        today = self._today()
        if self._current_date == today and self._stream:
            return

        self._current_date = today
        if self._stream:
            try:
                self._stream.close()
            except OSError:
                pass
            self._stream = None

        file_path = self.log_dir / today.isoformat() / self.filename
        file_path.parent.mkdir(parents=True, exist_ok=True)
        self._stream = open(file_path, "a", encoding=self.encoding)
        _cleanup_dated_dirs(self.log_dir, self.backup_days)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._ensure_stream()
            if self._stream is None:
                return
            msg = self.format(record)
            self._stream.write(msg + self.terminator)
            self._stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            if self._stream:
                try:
                    self._stream.close()
                except OSError:
                    pass
                self._stream = None
        finally:
            super().close()


class DailyFolderBusinessFileHandler(logging.Handler):
    """
    Route logs into per-day folders and per-business files:
    <log_dir>/<YYYY-MM-DD>/<business>.log
    """

    def __init__(
        self,
        log_dir: Path,
        backup_days: int = 7,
        encoding: str = "utf-8",
        timezone_name: str | None = None,
        now_fn: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        super().__init__()
        self.log_dir = log_dir
        self.backup_days = backup_days
        self.encoding = encoding
        self.terminator = "\n"
        self._tzinfo = _resolve_tzinfo(timezone_name)
        self._now_fn = now_fn
        self._current_date: datetime.date | None = None
        self._streams: dict[str, TextIO] = {}
        self._ensure_date()

    def _today(self) -> datetime.date:
        now = self._now_fn() if self._now_fn is not None else datetime.datetime.now(tz=self._tzinfo)
        if now.tzinfo is None:
            now = now.replace(tzinfo=self._tzinfo)
        return now.date()

    def _close_all_streams(self) -> None:
        for stream in self._streams.values():
            try:
                stream.close()
            except OSError:
                pass
        self._streams.clear()

    def _ensure_date(self) -> None:
        today = self._today()
        if self._current_date == today:
            return
        self._current_date = today
        self._close_all_streams()
        (self.log_dir / today.isoformat()).mkdir(parents=True, exist_ok=True)
        _cleanup_dated_dirs(self.log_dir, self.backup_days)

    def _stream_for_biz(self, biz: str) -> TextIO:
        stream = self._streams.get(biz)
        if stream is not None:
            return stream
        assert self._current_date is not None
        safe = "".join(c if (c.isalnum() or c in ("-", "_")) else "_" for c in biz)
        file_path = self.log_dir / self._current_date.isoformat() / f"{safe}.log"
        file_path.parent.mkdir(parents=True, exist_ok=True)
        stream = open(file_path, "a", encoding=self.encoding)
        self._streams[biz] = stream
        return stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._ensure_date()
            biz = infer_log_business(record)
            # Expose biz for formatters.
            setattr(record, "biz", biz)
            stream = self._stream_for_biz(biz)
            msg = self.format(record)
            stream.write(msg + self.terminator)
            stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            self._close_all_streams()
        finally:
            super().close()


class EnsureBizFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not hasattr(record, "biz"):
            setattr(record, "biz", infer_log_business(record))
        return True


class FixedBizFilter(logging.Filter):
    def __init__(self, biz: str) -> None:
        super().__init__()
        self._biz = biz

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        setattr(record, "biz", self._biz)
        return True


def setup_logging() -> None:
    """
    Configure application logging.
    Writes logs to a daily rotating folder under LOG_DIR (default: ./logs/),
    with files split by business, e.g. logs/2026-10-18/transfer.log.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    log_dir = _resolve_log_dir(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    access_logger = logging.getLogger("uvicorn.access")

    level_value = getattr(logging, settings.log_level.upper(), logging.INFO)
    timezone_name = settings.log_timezone

    formatter = LocalTimezoneFormatter(
        "%(asctime)s [%(levelname)s] [%(biz)s] %(name)s - %(message)s",
        timezone_name=timezone_name,
    )

    if settings.log_split_by_business:
        file_handler: logging.Handler = DailyFolderBusinessFileHandler(
            log_dir=log_dir,
            backup_days=settings.log_backup_days,
            encoding="utf-8",
            timezone_name=timezone_name,
        )
    else:
        file_handler = DailyFolderFileHandler(
            log_dir=log_dir,
            filename="app.log",
            backup_days=settings.log_backup_days,
            encoding="utf-8",
            timezone_name=timezone_name,
        )
    file_handler.setFormatter(formatter)
    file_handler.addFilter(EnsureBizFilter())
    # Only application logs (logger "fusion") go into the business log files.
    file_handler.addFilter(lambda record: record.name.startswith(APP_LOGGER_NAME))
    app_logger.setLevel(level_value)
    app_logger.propagate = True  # let logs also go to root/uvicorn handlers (console)
    app_logger.addHandler(file_handler)

    access_file_handler = DailyFolderFileHandler(
        log_dir=log_dir,
        filename="access.log",
        backup_days=settings.log_backup_days,
        encoding="utf-8",
        timezone_name=timezone_name,
    )
    access_file_handler.setFormatter(formatter)
    access_file_handler.addFilter(FixedBizFilter("access"))
    access_logger.setLevel(level_value)
    access_logger.propagate = True
    access_logger.addHandler(access_file_handler)

    # Console handler: attach to root so that uvicorn and fusion logs are
    # visible in the terminal.
    root_logger.setLevel(level_value)
    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root_logger.handlers
    )
    if not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.addFilter(EnsureBizFilter())
        root_logger.addHandler(console_handler)

    _LOGGING_CONFIGURED = True


logger = logging.getLogger(APP_LOGGER_NAME)
