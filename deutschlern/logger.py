"""
Debug output for DeutschLern.

One line per event, prefixed with wall-clock time, time since start and a
colored category tag:

    14:02:11.508 (+   3.2s) [ API] → chat.completions.create (model: deepseek/deepseek-chat)
    14:02:13.910 (+   5.6s) [ GEN] ↷ [quiz:A1:Assessment#4] superseded by #5, dropped

Categories: ENV (configuration), API (chat completions), GEN (generation,
history, request epochs), QUIZ, SPK (speaking and speech engines), DB
(reports), plus OK / WARN / ERR / INFO / DBG.

Usage:
    from deutschlern.logger import logger

    logger.gen_stale("level", epoch=3, current=4)
    logger.error("Failed to save reports", exc_info=True)

DEUTSCHLERN_DEBUG=0 silences everything.
"""

import os
import sys
import time
import traceback
from datetime import datetime
from typing import Dict, Optional

# The status glyphs below need UTF-8 even on Windows consoles
for _stream in (sys.stdout, sys.stderr):
    if hasattr(_stream, "reconfigure"):
        _stream.reconfigure(encoding="utf-8")

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"

_PALETTE: Dict[str, str] = {
    "red": "\033[31m",
    "green": "\033[32m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "yellow": "\033[33m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "dim": DIM,
}


class DebugLogger:
    def __init__(self, enabled: bool = True, stream=None):
        self.enabled = enabled
        self.stream = stream
        self._started = time.monotonic()

    def _clock(self) -> str:
        now = datetime.now()
        since = time.monotonic() - self._started
        return f"{now:%H:%M:%S}.{now.microsecond // 1000:03d} (+{since:>6.1f}s)"

    def _write(self, text: str, err: bool = False) -> None:
        out = self.stream or (sys.stderr if err else sys.stdout)
        print(text, file=out, flush=True)

    def _log(self, tag: str, color: str, message: str, exc_info: bool = False) -> None:
        if not self.enabled:
            return

        clock = self._clock()
        head = f"{DIM}{clock}{RESET} {_PALETTE[color]}{BOLD}[{tag:>4}]{RESET} "
        indent = f"{DIM}{' ' * (len(clock) + 8)}{RESET}"
        first, *rest = message.split("\n")
        self._write(head + first)
        for line in rest:
            self._write(indent + line)

        if exc_info:
            for line in traceback.format_exc().splitlines():
                if line.strip():
                    self._write(f"{indent}{_PALETTE['red']}{line}{RESET}", err=True)

    # ENV
    def env(self, message: str, **kwargs) -> None:
        self._log("ENV", "magenta", message, **kwargs)

    def env_success(self, message: str, **kwargs) -> None:
        self._log("ENV", "green", f"✓ {message}", **kwargs)

    def env_error(self, message: str, **kwargs) -> None:
        self._log("ENV", "red", f"✗ {message}", **kwargs)

    # API
    def api(self, message: str, **kwargs) -> None:
        self._log("API", "cyan", message, **kwargs)

    def api_call(self, endpoint: str, model: Optional[str] = None, **kwargs) -> None:
        suffix = f" (model: {model})" if model else ""
        self._log("API", "cyan", f"→ {endpoint}{suffix}", **kwargs)

    def api_response(self, endpoint: str, duration_ms: Optional[float] = None, **kwargs) -> None:
        suffix = f" in {duration_ms:.0f}ms" if duration_ms else ""
        self._log("API", "bright_cyan", f"← {endpoint}{suffix}", **kwargs)

    def api_error(self, message: str, **kwargs) -> None:
        self._log("API", "bright_red", f"✗ {message}", **kwargs)

    # GEN
    def gen(self, message: str, **kwargs) -> None:
        self._log("GEN", "yellow", message, **kwargs)

    def gen_start(self, consumer: str, epoch: int, what: str, **kwargs) -> None:
        self._log("GEN", "yellow", f"→ [{consumer}#{epoch}] {what}", **kwargs)

    def gen_stale(self, consumer: str, epoch: int, current: int, **kwargs) -> None:
        """A response arrived after a newer request for the same consumer."""
        self._log("GEN", "dim", f"↷ [{consumer}#{epoch}] superseded by #{current}, dropped", **kwargs)

    def gen_error(self, message: str, **kwargs) -> None:
        self._log("GEN", "bright_red", f"✗ {message}", **kwargs)

    # QUIZ / SPK
    def quiz(self, message: str, **kwargs) -> None:
        self._log("QUIZ", "blue", message, **kwargs)

    def quiz_transition(self, before: str, after: str, **kwargs) -> None:
        self._log("QUIZ", "bright_blue", f"{before} → {after}", **kwargs)

    def speaking(self, message: str, **kwargs) -> None:
        self._log("SPK", "bright_magenta", message, **kwargs)

    def speaking_transition(self, before: str, after: str, **kwargs) -> None:
        self._log("SPK", "bright_magenta", f"{before} → {after}", **kwargs)

    # DB
    def db(self, message: str, **kwargs) -> None:
        self._log("DB", "green", message, **kwargs)

    # General
    def success(self, message: str, **kwargs) -> None:
        self._log("OK", "bright_green", f"✓ {message}", **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log("WARN", "bright_yellow", f"⚠ {message}", **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log("ERR", "bright_red", f"✗ {message}", **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log("INFO", "white", message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._log("DBG", "dim", message, **kwargs)

    def separator(self, title: Optional[str] = None) -> None:
        if not self.enabled:
            return
        rule = f"{'─' * 20} {title} {'─' * 20}" if title else "─" * 60
        self._write(f"\n{DIM}{rule}{RESET}\n")


def _debug_enabled() -> bool:
    return os.getenv("DEUTSCHLERN_DEBUG", "1").strip().lower() not in ("0", "false", "no", "off")


logger = DebugLogger(enabled=_debug_enabled())


class Timer:
    """with Timer() as t: ...  then t.duration_ms"""

    def __init__(self):
        self.duration_ms: float = 0.0
        self._t0: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, *exc) -> None:
        if self._t0 is not None:
            self.duration_ms = (time.perf_counter() - self._t0) * 1000
