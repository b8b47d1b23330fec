from types import SimpleNamespace

import pytest

from wallpaper_components import ui as ui_module
from wallpaper_components.state import FailedLinkLogger
from wallpaper_components.ui import TerminalUI


@pytest.fixture
def clock(monkeypatch):
    ticks = iter([100.0, 100.1, 101.0, 102.0, 103.0, 103.1, 104.0])
    monkeypatch.setattr(ui_module, "time", SimpleNamespace(monotonic=lambda: next(ticks)))


def test_plain_progress_prints_quarters_only(clock, capsys):
    ui = TerminalUI(pretty=False)
    ui.progress("1.jpg", current=10, total=100, speed_bps=10.0)
    ui.progress("1.jpg", current=20, total=100, speed_bps=10.0)  # throttled
    ui.progress("1.jpg", current=20, total=100, speed_bps=10.0)  # same quarter
    ui.progress("1.jpg", current=50, total=100, speed_bps=10.0)
    ui.progress("1.jpg", current=60, total=None, speed_bps=10.0)  # unknown size
    ui.progress("1.jpg", current=100, total=100, speed_bps=10.0, force=True)
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 3
    assert "10.00%" in lines[0]
    assert "50.00%" in lines[1]
    assert "100.00%" in lines[2]
    assert all(line.startswith("1.jpg") for line in lines)


def test_finish_progress_line_resets_buckets(clock, capsys):
    ui = TerminalUI(pretty=False)
    ui.progress("1.jpg", current=80, total=100, speed_bps=1.0)
    ui.finish_progress_line("1.jpg")
    ui.progress("1.jpg", current=10, total=100, speed_bps=1.0)
    assert len(capsys.readouterr().out.splitlines()) == 2


def test_messages_split_between_stdout_and_stderr(capsys):
    ui = TerminalUI(pretty=False)
    ui.info("hello")
    ui.ok("saved")
    ui.warn("careful")
    ui.error("broken")
    captured = capsys.readouterr()
    assert captured.out.splitlines() == ["[INFO] hello", "[ OK ] saved"]
    assert captured.err.splitlines() == ["[WARN] careful", "[FAIL] broken"]


def test_render_bar():
    ui = TerminalUI(pretty=False)
    assert ui._render_bar(5, 10, width=4) == "[##--]"
    assert ui._render_bar(5, None, width=4) == "[....]"


def test_failed_link_logger_writes_header_once(tmp_path):
    path = tmp_path / "logs" / "failed.tsv"
    FailedLinkLogger(path).add(gallery_url="http://x.test/g?", page=1, reason="bad\tthing\n")
    FailedLinkLogger(path).add(
        gallery_url="http://x.test/g?",
        page=2,
        reason="gone",
        item_id="42",
        filename="42.jpg",
        download_url="https://example.test/42",
    )
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == FailedLinkLogger.HEADER.rstrip("\n")
    assert len(lines) == 3
    assert lines[1].split("\t")[2:] == ["1", "", "", "bad thing", ""]
    assert lines[2].split("\t")[2:] == ["2", "42", "42.jpg", "gone", "https://example.test/42"]
