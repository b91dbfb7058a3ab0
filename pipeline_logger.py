import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional


class PipelineLogger:
    """
    Per-conversion log files:
    - user log: always written, progress lines and the warning report.
    - debug log: only created when enable_debug is True; also receives stdlib logging records
      once `capture_stdlib_logging()` has been called.

    Files live under {log_root}/ (default: a logs/ folder next to the source document).
    """

    def __init__(
        self,
        source_path: str,
        log_root: Optional[str] = None,
        enable_debug: bool = False,
        console_echo: bool = True,
    ):
        source = Path(source_path)
        self.doc_name = source.stem or "document"
        run_id = datetime.now().strftime("%Y%m%dT%H%M%S%f")
        self.run_dir = Path(log_root or (source.parent / "logs"))
        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.user_log_path = self.run_dir / f"{self.doc_name}.user.log"
        self.debug_log_path = self.run_dir / f"{self.doc_name}.debug.log"

        self.enable_debug = enable_debug
        self.console_echo = console_echo
        self._handlers: List[logging.Handler] = []

        self._user_logger = self._create_logger(
            f"docx2md.user.{self.doc_name}.{run_id}", self.user_log_path, logging.INFO
        )
        self._debug_logger = None
        if enable_debug:
            self._debug_logger = self._create_logger(
                f"docx2md.debug.{self.doc_name}.{run_id}", self.debug_log_path, logging.DEBUG
            )

    def _create_logger(self, name: str, path: Path, level: int) -> logging.Logger:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = False
        handler = logging.FileHandler(path, mode="w", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.handlers.clear()
        logger.addHandler(handler)
        self._handlers.append(handler)
        return logger

    def _format_line(self, module: str, level: str, message: str) -> str:
        ts = datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")
        return f"[{ts}][{module}][{level}] {message}"

    def _emit_user(self, module: str, level: str, message: str):
        line = self._format_line(module, level, message)
        self._user_logger.info(line)
        if self.console_echo:
            print(line)
        if self._debug_logger:
            self._debug_logger.debug(line)

    def _emit_debug(self, module: str, level: str, message: str):
        if not self.enable_debug or not self._debug_logger:
            return
        self._debug_logger.debug(self._format_line(module, level, message))

    def user(self, message: str, module: str = "CLI"):
        """High-level info that is always recorded."""
        self._emit_user(module, "INFO", message)

    def warn(self, message: str, module: str = "CLI"):
        self._emit_user(module, "WARN", message)

    def error(self, message: str, module: str = "CLI"):
        self._emit_user(module, "ERROR", message)

    def debug(self, message: str, module: str = "CLI"):
        self._emit_debug(module, "DEBUG", message)

    def report_warnings(self, warnings: List[str], module: str = "CONVERT"):
        """One WARN line per conversion warning plus a count line."""
        for w in warnings:
            self.warn(w, module=module)
        self.user(f"[REPORT] warnings={len(warnings)}", module=module)

    def capture_stdlib_logging(self, level: int = logging.DEBUG) -> Optional[logging.Handler]:
        """Forward records from the converter modules' loggers into the debug log."""
        if not self.enable_debug:
            return None
        owner = self

        class _PipelineLogHandler(logging.Handler):
            def emit(self, record):
                try:
                    msg = record.getMessage()
                except Exception:
                    msg = str(record.msg)
                owner._emit_debug(record.name, record.levelname, msg)

        handler = _PipelineLogHandler(level=level)
        root_logger = logging.getLogger()
        root_logger.addHandler(handler)
        if root_logger.level > level:
            root_logger.setLevel(level)
        self._handlers.append(handler)
        return handler

    def describe_paths(self):
        self.user(f"user={self.user_log_path}")
        if self.enable_debug:
            self.user(f"debug={self.debug_log_path}")

    def close(self):
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()
