import os
import shutil
import sys
import threading
import time
from typing import Optional, TextIO

from .utils import human_bytes


def enable_ansi_colors() -> bool:
    if not sys.stdout.isatty():
        return False
    if os.name != "nt":
        return True
    try:
        import ctypes

        kernel32 = ctypes.windll.kernel32
        handle = kernel32.GetStdHandle(-11)
        mode = ctypes.c_uint()
        if kernel32.GetConsoleMode(handle, ctypes.byref(mode)) == 0:
            return False
        if kernel32.SetConsoleMode(handle, mode.value | 0x0004) == 0:
            return False
        return True
    except (AttributeError, OSError):
        return False


class TerminalUI:
    RESET = "\033[0m"
    CYAN = "\033[96m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"

    def __init__(self, pretty: bool, workers: int = 1):
        self.pretty = pretty
        self.workers = max(1, workers)
        self.is_tty = sys.stdout.isatty()
        # one rewritten line only makes sense while a single download is running
        self.dynamic = pretty and self.is_tty and self.workers == 1
        self.use_color = pretty and enable_ansi_colors()
        self.lock = threading.Lock()
        self.last_progress_at: dict[str, float] = {}
        self.pct_buckets: dict[str, int] = {}
        self.term_width = shutil.get_terminal_size((120, 20)).columns
        self.dynamic_active = False
        self.pct_step = 25

    def _truncate(self, text: str) -> str:
        if len(text) <= self.term_width - 1:
            return text
        return text[: self.term_width - 1]

    def _color(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        return f"{color}{text}{self.RESET}"

    def _line(self, text: str, stream: Optional[TextIO] = None) -> None:
        with self.lock:
            if self.dynamic and self.dynamic_active:
                sys.stdout.write("\n")
                sys.stdout.flush()
                self.dynamic_active = False
            print(text, file=stream or sys.stdout, flush=True)

    def info(self, msg: str) -> None:
        self._line(self._color("[INFO]", self.CYAN) + f" {msg}")

    def ok(self, msg: str) -> None:
        self._line(self._color("[ OK ]", self.GREEN) + f" {msg}")

    def warn(self, msg: str) -> None:
        self._line(self._color("[WARN]", self.YELLOW) + f" {msg}", stream=sys.stderr)

    def error(self, msg: str) -> None:
        self._line(self._color("[FAIL]", self.RED) + f" {msg}", stream=sys.stderr)

    def _render_bar(self, current: int, total: Optional[int], width: int = 22) -> str:
        if not total or total <= 0:
            return "[" + ("." * width) + "]"
        pct = max(0.0, min(1.0, current / total))
        fill = int(width * pct)
        return "[" + ("#" * fill) + ("-" * (width - fill)) + "]"

    def progress(
        self,
        key: str,
        current: int,
        total: Optional[int],
        speed_bps: float,
        force: bool = False,
    ) -> None:
        now = time.monotonic()
        last = self.last_progress_at.get(key, 0.0)
        min_interval = 0.20 if self.dynamic else 0.45
        if not force and (now - last) < min_interval:
            return

        if not self.dynamic and not force:
            # plain output: one line per quarter of the file
            if not total or total <= 0:
                return
            bucket = int((current / total * 100.0) // self.pct_step)
            if bucket <= self.pct_buckets.get(key, -1):
                return
            self.pct_buckets[key] = bucket

        self.last_progress_at[key] = now

        pct = (current / total * 100.0) if total and total > 0 else 0.0
        bar = self._render_bar(current, total, width=22 if self.dynamic else 12)
        total_str = human_bytes(total) if total else "?"
        line = (
            f"{key:<24} {bar} {pct:6.2f}% "
            f"{human_bytes(current):>10}/{total_str:<10} "
            f"{human_bytes(speed_bps):>8}/s"
        )
        line = self._truncate(line)

        with self.lock:
            if self.dynamic:
                sys.stdout.write("\r" + line.ljust(self.term_width))
                sys.stdout.flush()
                self.dynamic_active = True
            else:
                print(line, flush=True)

    def finish_progress_line(self, key: Optional[str] = None) -> None:
        with self.lock:
            if key is not None:
                self.last_progress_at.pop(key, None)
                self.pct_buckets.pop(key, None)
            if self.dynamic and self.dynamic_active:
                sys.stdout.write("\n")
                sys.stdout.flush()
                self.dynamic_active = False
