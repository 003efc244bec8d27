#!/usr/bin/env python3
"""
git-istage - Interactively stage and unstage files and review their diffs
Requires: Python 3.8+ with curses (built-in on Unix systems)
"""

import argparse
import curses
import locale
import logging
import sys
from typing import Dict, Optional

from git_repo import GitError, Repository
from render import (ADDED, ASCII_THEME, CURSOR, HELP, HUNK, PLAIN, REMOVED, STAGED, STATUS,
                    UNSTAGED, Line, Theme, render)
from session import Key, Session

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

CTRL_C = 3

KEYMAP = {
    ord('q'): Key.QUIT,
    CTRL_C: Key.QUIT,
    curses.KEY_UP: Key.UP,
    curses.KEY_DOWN: Key.DOWN,
    curses.KEY_PPAGE: Key.PAGE_UP,
    curses.KEY_NPAGE: Key.PAGE_DOWN,
    ord(' '): Key.TOGGLE,
    ord('d'): Key.DIFF,
    ord('g'): Key.TOP,
    ord('G'): Key.BOTTOM,
}


def decode_key(key: int) -> Optional[Key]:
    return KEYMAP.get(key)


def build_palette(use_color: bool) -> Dict[str, int]:
    """Map render style names to curses attributes"""
    palette = {
        PLAIN: curses.A_NORMAL,
        CURSOR: curses.A_BOLD,
        STAGED: curses.A_BOLD,
        UNSTAGED: curses.A_DIM,
        ADDED: curses.A_NORMAL,
        REMOVED: curses.A_NORMAL,
        HUNK: curses.A_NORMAL,
        STATUS: curses.A_BOLD,
        HELP: curses.A_NORMAL,
    }
    if not use_color or not curses.has_colors():
        return palette

    curses.start_color()
    curses.use_default_colors()
    many = curses.COLORS >= 256
    curses.init_pair(1, 12 if curses.COLORS >= 16 else curses.COLOR_BLUE, -1)
    curses.init_pair(2, 42 if many else curses.COLOR_GREEN, -1)
    curses.init_pair(3, 240 if many else curses.COLOR_WHITE, -1)
    curses.init_pair(4, curses.COLOR_GREEN, -1)
    curses.init_pair(5, curses.COLOR_RED, -1)
    curses.init_pair(6, curses.COLOR_CYAN, -1)

    palette.update({
        CURSOR: curses.color_pair(1),
        STAGED: curses.color_pair(2),
        UNSTAGED: curses.color_pair(3) if many else curses.A_DIM,
        ADDED: curses.color_pair(4),
        REMOVED: curses.color_pair(5),
        HUNK: curses.color_pair(6),
    })
    return palette


class IStageScreen:
    """Curses front-end: reads keys, feeds the session, paints frames"""

    def __init__(self, stdscr, session: Session, theme: Theme, use_color: bool = True):
        self.stdscr = stdscr
        self.session = session
        self.theme = theme
        self._init_curses()
        self.palette = build_palette(use_color)

    def _init_curses(self):
        """Initialize curses settings"""
        curses.curs_set(0)  # Hide cursor
        curses.noecho()
        curses.cbreak()
        self.stdscr.keypad(True)

    def _safe_addstr(self, row: int, col: int, text: str, attr=curses.A_NORMAL) -> int:
        """Safely add a string, returning the column after it"""
        height, width = self.stdscr.getmaxyx()
        if row < 0 or row >= height or col >= width:
            return col

        # Truncate text to fit
        max_len = width - col - 1
        if max_len <= 0:
            return col

        safe_text = text.replace('\t', '    ')[:max_len]

        try:
            self.stdscr.addstr(row, col, safe_text, attr)
        except curses.error:
            pass
        return col + len(safe_text)

    def draw(self):
        self.draw_frame(render(self.session, self.theme))

    def draw_frame(self, frame: list):
        self.stdscr.erase()
        for row, line in enumerate(frame):
            self._draw_line(row, line)
        self.stdscr.refresh()

    def _draw_line(self, row: int, line: Line):
        col = 0
        for text, style in line:
            col = self._safe_addstr(row, col, text, self.palette.get(style, curses.A_NORMAL))

    def handle_input(self):
        """Read one key and pass it to the session"""
        try:
            key = self.stdscr.getch()
        except KeyboardInterrupt:
            self.session.handle_key(Key.QUIT)
            return

        if key == curses.KEY_RESIZE:
            height, _ = self.stdscr.getmaxyx()
            self.session.resize(height)
            return

        decoded = decode_key(key)
        if decoded is not None:
            self.session.handle_key(decoded)

    def run(self):
        """Main run loop"""
        while not self.session.quitting:
            self.draw()
            self.handle_input()
        self.draw()


def configure_logging(log_file: Optional[str], verbose: bool):
    """Send logs to ``log_file``; curses owns the terminal so nothing goes to stderr"""
    root = logging.getLogger()
    if log_file:
        logging.basicConfig(
            filename=log_file,
            level=logging.DEBUG if verbose else logging.INFO,
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )
    else:
        root.addHandler(logging.NullHandler())


def pick_theme(ascii_only: bool) -> Theme:
    if ascii_only:
        return ASCII_THEME
    encoding = locale.getpreferredencoding(False)
    try:
        Theme().staged_box.encode(encoding)
    except (UnicodeEncodeError, LookupError):
        return ASCII_THEME
    return Theme()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='git-istage',
        description='Interactively stage and unstage changed files')
    parser.add_argument('--no-color', action='store_true',
                        help='Disable colors')
    parser.add_argument('--ascii', action='store_true',
                        help='Use ASCII checkboxes instead of unicode ones')
    parser.add_argument('--log-file',
                        help='Write a debug log of git commands to this file')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log every git command (with --log-file)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    configure_logging(args.log_file, args.verbose)

    repo = Repository()
    try:
        entries = repo.load()
    except GitError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not entries:
        print("No changes to stage or unstage.")
        sys.exit(0)

    # Needed for ncurses to draw non-ASCII glyphs in the user's locale
    locale.setlocale(locale.LC_ALL, '')
    theme = pick_theme(args.ascii)

    def run_tui(stdscr):
        height, _ = stdscr.getmaxyx()
        session = Session(entries, repo, terminal_height=height)
        IStageScreen(stdscr, session, theme, use_color=not args.no_color).run()

    try:
        curses.wrapper(run_tui)
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        logger.exception("unexpected error")
        print(f"Error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
