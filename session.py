"""
Interaction state for git-istage.
A Session owns the file list, cursor, mode and diff scroll position and turns
key events into state changes. It knows nothing about curses; the terminal
front-end decodes keys into ``Key`` values and paints what ``render`` returns.
"""

import logging
from enum import Enum
from typing import List

from git_repo import ActionKind, Classification, FileEntry, Repository

logger = logging.getLogger(__name__)


class Mode(Enum):
    BROWSING = 'browsing'
    VIEWING_DIFF = 'diff'


class Key(Enum):
    QUIT = 'quit'
    UP = 'up'
    DOWN = 'down'
    PAGE_UP = 'page-up'
    PAGE_DOWN = 'page-down'
    TOGGLE = 'toggle'
    DIFF = 'diff'
    TOP = 'top'
    BOTTOM = 'bottom'


class Session:
    def __init__(self, entries: List[FileEntry], repo: Repository, terminal_height: int = 24):
        if not entries:
            raise ValueError("a session needs at least one changed file")
        self.entries = entries
        self.repo = repo
        self.cursor = 0
        self.mode = Mode.BROWSING
        self.diff_text = ""
        self.diff_lines: List[str] = []
        self.scroll_offset = 0
        self.viewport_height = 1
        self.list_height = 1
        self.list_offset = 0
        self.quitting = False
        self.status_message = ""
        self.resize(terminal_height)

    @property
    def current(self) -> FileEntry:
        return self.entries[self.cursor]

    @property
    def max_scroll(self) -> int:
        return max(0, len(self.diff_lines) - self.viewport_height)

    def resize(self, terminal_height: int):
        """Recompute the diff viewport and file list window for ``terminal_height`` rows"""
        self.viewport_height = max(1, terminal_height - len(self.entries) - 1)
        self.scroll_offset = min(self.scroll_offset, self.max_scroll)
        # Reserve the status line and the help line below the list
        self.list_height = max(1, terminal_height - 2)
        self._keep_cursor_visible()

    def _keep_cursor_visible(self):
        if self.cursor < self.list_offset:
            self.list_offset = self.cursor
        elif self.cursor >= self.list_offset + self.list_height:
            self.list_offset = self.cursor - self.list_height + 1
        max_offset = max(0, len(self.entries) - self.list_height)
        self.list_offset = max(0, min(self.list_offset, max_offset))

    def handle_key(self, key: Key):
        """Apply one key press"""
        self.status_message = ""

        if key is Key.QUIT:
            self.quitting = True
        elif self.mode is Mode.BROWSING:
            self._handle_browsing_key(key)
        else:
            self._handle_diff_key(key)

    def _handle_browsing_key(self, key: Key):
        if key is Key.UP:
            self._move_cursor(-1)
        elif key is Key.DOWN:
            self._move_cursor(1)
        elif key is Key.TOGGLE:
            self.toggle_current()
        elif key is Key.DIFF:
            self.mode = Mode.VIEWING_DIFF
            self._refresh_diff()

    def _handle_diff_key(self, key: Key):
        half_page = self.viewport_height // 2

        if key is Key.UP:
            if self.scroll_offset > 0:
                self.scroll_offset -= 1
            else:
                # At the top of this diff, go to the previous file
                self._move_cursor(-1)
        elif key is Key.DOWN:
            if self.scroll_offset < self.max_scroll:
                self.scroll_offset += 1
            else:
                self._move_cursor(1)
        elif key is Key.PAGE_DOWN:
            self.scroll_offset = min(self.max_scroll, self.scroll_offset + half_page)
        elif key is Key.PAGE_UP:
            self.scroll_offset = max(0, self.scroll_offset - half_page)
        elif key is Key.TOP:
            self.scroll_offset = 0
        elif key is Key.BOTTOM:
            self.scroll_offset = self.max_scroll
        elif key is Key.DIFF:
            self.mode = Mode.BROWSING

    def _move_cursor(self, delta: int):
        self.cursor = (self.cursor + delta) % len(self.entries)
        self.scroll_offset = 0
        self._keep_cursor_visible()
        if self.mode is Mode.VIEWING_DIFF:
            self._refresh_diff()

    def _refresh_diff(self):
        self.diff_text = self.repo.fetch_diff(self.current)
        self.diff_lines = self.diff_text.splitlines()
        self.scroll_offset = 0

    def toggle_current(self):
        """Stage or unstage the file under the cursor.

        The classification only changes when git reports success; otherwise
        the error is left in ``status_message``.
        """
        entry = self.current
        if entry.classification is Classification.STAGED:
            action, new_classification = entry.unstage_action, Classification.UNSTAGED
        else:
            action, new_classification = entry.stage_action, Classification.STAGED

        result = self.repo.run_action(action)
        if result.ok:
            entry.classification = new_classification
            verb = "Staged" if new_classification is Classification.STAGED else "Unstaged"
            self.status_message = f"{verb}: {entry.name}"
            logger.info("%s %s", verb.lower(), entry.name)
        else:
            error = result.stderr.strip().splitlines()
            detail = error[-1] if error else f"exit status {result.returncode}"
            verb = "staging" if action.kind is ActionKind.STAGE else "unstaging"
            self.status_message = f"Error {verb}: {detail}"
