from render import (ADDED, ASCII_THEME, CURSOR, HELP, HUNK, PLAIN, REMOVED, STAGED, STATUS,
                    UNSTAGED, Theme, diff_line_style, frame_text, render)
from session import Key, Session
from fakes import FakeRepository, entries_from, numbered_diff


def make_session(*lines, diffs=None, terminal_height=24, failing_paths=()):
    repo = FakeRepository(diffs=diffs, failing_paths=failing_paths)
    return Session(entries_from(*lines), repo, terminal_height=terminal_height)


def test_list_view():
    session = make_session("M  staged.py", "MM partial.py", " M plain.py")
    assert frame_text(render(session)).split("\n") == [
        "> [✓] staged.py",
        "  [~] partial.py",
        "  [ ] plain.py",
        "",
        "↑/↓: navigate  space: toggle  d: diff  q: quit",
    ]


def test_list_view_styles():
    session = make_session("M  staged.py", " M plain.py")
    frame = render(session)
    assert frame[0] == [("> ", CURSOR), ("[✓]", STAGED), (" staged.py", PLAIN)]
    assert frame[1] == [("  ", CURSOR), ("[ ]", UNSTAGED), (" plain.py", PLAIN)]
    assert frame[-1] == [("↑/↓: navigate  space: toggle  d: diff  q: quit", HELP)]


def test_cursor_marker_follows_selection():
    session = make_session(" M a.py", " M b.py")
    session.handle_key(Key.DOWN)
    lines = frame_text(render(session)).split("\n")
    assert lines[0].startswith("  ")
    assert lines[1].startswith("> ")


def test_status_message_shown_above_help():
    session = make_session(" M locked.py", failing_paths={"locked.py"})
    session.handle_key(Key.TOGGLE)
    frame = render(session)
    assert frame[-2][0][1] == STATUS
    assert frame[-2][0][0].startswith("Error staging:")


def test_ascii_theme():
    session = make_session("A  new.py")
    assert frame_text(render(session, ASCII_THEME)).startswith("> [x] new.py")


def test_custom_cursor_marker_pads_other_rows():
    session = make_session(" M a.py", " M b.py")
    lines = frame_text(render(session, Theme(cursor_marker="-> "))).split("\n")
    assert lines[:2] == ["-> [ ] a.py", "   [ ] b.py"]


def test_diff_view_slices_viewport():
    # 1 file + 1 footer row leave an 8 line viewport
    session = make_session(" M a.py", diffs={"a.py": numbered_diff(30)}, terminal_height=10)
    session.handle_key(Key.DIFF)
    session.handle_key(Key.PAGE_DOWN)

    lines = frame_text(render(session)).split("\n")
    assert lines[0] == "line 5"
    assert lines[7] == "line 12"
    assert lines[8] == "↑/↓/PageUp/PageDown scroll (12/30)  g: top  G: bottom  d: back  q: quit"
    assert len(lines) == 9


def test_short_diff_footer_counts_all_lines():
    session = make_session(" M a.py", diffs={"a.py": "one\ntwo\n"})
    session.handle_key(Key.DIFF)
    frame = render(session)
    assert frame_text(frame).split("\n")[-1].startswith("↑/↓/PageUp/PageDown scroll (2/2)")


def test_diff_lines_are_styled_by_prefix():
    text = "diff --git a/a.py b/a.py\n--- a/a.py\n+++ b/a.py\n@@ -1 +1 @@\n-old\n+new\n same\n"
    session = make_session(" M a.py", diffs={"a.py": text})
    session.handle_key(Key.DIFF)
    styles = [line[0][1] for line in render(session)[:-1]]
    assert styles == [PLAIN, PLAIN, PLAIN, HUNK, REMOVED, ADDED, PLAIN]


def test_diff_line_style():
    assert diff_line_style("+added") == ADDED
    assert diff_line_style("+++ b/file") == PLAIN
    assert diff_line_style("-removed") == REMOVED
    assert diff_line_style("@@ -1,2 +1,2 @@ def f():") == HUNK


def test_quitting_renders_nothing():
    session = make_session(" M a.py")
    session.handle_key(Key.QUIT)
    assert render(session) == []
    assert frame_text(render(session)) == ""
