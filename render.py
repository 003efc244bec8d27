"""
Frame rendering for git-istage.
``render`` turns a Session into a list of lines, each a list of (text, style)
spans. Style names are resolved to terminal attributes by the front-end.
"""

from dataclasses import dataclass
from typing import List, Tuple

from git_repo import Classification
from session import Mode, Session

Span = Tuple[str, str]
Line = List[Span]

# Style names
PLAIN = 'plain'
CURSOR = 'cursor'
STAGED = 'staged'
UNSTAGED = 'unstaged'
ADDED = 'added'
REMOVED = 'removed'
HUNK = 'hunk'
STATUS = 'status'
HELP = 'help'

LIST_HELP = "↑/↓: navigate  space: toggle  d: diff  q: quit"
DIFF_HELP = "↑/↓/PageUp/PageDown scroll ({last}/{total})  g: top  G: bottom  d: back  q: quit"


@dataclass(frozen=True)
class Theme:
    """Glyphs used by the renderer"""
    cursor_marker: str = "> "
    staged_box: str = "[✓]"
    partial_box: str = "[~]"
    unstaged_box: str = "[ ]"

    def checkbox(self, classification: Classification) -> Span:
        if classification is Classification.STAGED:
            return self.staged_box, STAGED
        if classification is Classification.PARTIALLY_STAGED:
            return self.partial_box, UNSTAGED
        return self.unstaged_box, UNSTAGED


ASCII_THEME = Theme(staged_box="[x]")


def diff_line_style(line: str) -> str:
    if line.startswith('+') and not line.startswith('+++'):
        return ADDED
    if line.startswith('-') and not line.startswith('---'):
        return REMOVED
    if line.startswith('@@'):
        return HUNK
    return PLAIN


def render(session: Session, theme: Theme = Theme()) -> List[Line]:
    if session.quitting:
        return []
    if session.mode is Mode.VIEWING_DIFF:
        return render_diff(session)
    return render_list(session, theme)


def render_list(session: Session, theme: Theme) -> List[Line]:
    frame: List[Line] = []
    start = session.list_offset
    visible = session.entries[start:start + session.list_height]
    for i, entry in enumerate(visible, start):
        marker = theme.cursor_marker if i == session.cursor else " " * len(theme.cursor_marker)
        frame.append([
            (marker, CURSOR),
            theme.checkbox(entry.classification),
            (" " + entry.name, PLAIN),
        ])

    frame.append([(session.status_message, STATUS)] if session.status_message else [])
    frame.append([(LIST_HELP, HELP)])
    return frame


def render_diff(session: Session) -> List[Line]:
    lines = session.diff_lines
    start = session.scroll_offset
    end = min(start + session.viewport_height, len(lines))

    frame: List[Line] = [[(line, diff_line_style(line))] for line in lines[start:end]]
    frame.append([(DIFF_HELP.format(last=end, total=len(lines)), HELP)])
    return frame


def frame_text(frame: List[Line]) -> str:
    """Plain text of a frame, without styles"""
    return "\n".join("".join(text for text, _ in line) for line in frame)
