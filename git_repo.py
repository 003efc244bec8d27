"""
Git plumbing for git-istage: status interpretation, snapshot loading,
staging actions and diff fetching.
All git access goes through a single runner so it can be swapped in tests.
"""

import logging
import os
import subprocess
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Base class for git failures that stop the program"""


class NotARepository(GitError):
    def __init__(self, message: str = "Not inside a git repository"):
        super().__init__(message)


class StatusQueryFailure(GitError):
    def __init__(self, stderr: str):
        message = stderr.strip() or "git status failed"
        super().__init__(f"git status failed: {message}")


class GitResult(NamedTuple):
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


Runner = Callable[[Sequence[str], Optional[str]], GitResult]


def run_git(args: Sequence[str], cwd: Optional[str] = None) -> GitResult:
    """Run a git command and return (returncode, stdout, stderr)"""
    try:
        result = subprocess.run(
            ['git'] + list(args),
            capture_output=True,
            text=True,
            cwd=cwd
        )
    except Exception as e:
        logger.warning("git %s could not be started: %s", ' '.join(args), e)
        return GitResult(1, "", str(e))
    logger.debug("git %s -> %d", ' '.join(args), result.returncode)
    return GitResult(result.returncode, result.stdout, result.stderr)


class Classification(Enum):
    UNSTAGED = 'unstaged'
    STAGED = 'staged'
    PARTIALLY_STAGED = 'partially staged'


class ActionKind(Enum):
    STAGE = 'stage'
    UNSTAGE = 'unstage'


class Operation(Enum):
    ADD = 'add'
    RM_CACHED = 'rm --cached'
    RESTORE_STAGED = 'restore --staged'


class GitAction(NamedTuple):
    """A staging mutation for one path, turned into a git command only when run"""
    kind: ActionKind
    operation: Operation
    path: str

    def argv(self) -> List[str]:
        if self.operation is Operation.ADD:
            return ['add', '--', self.path]
        if self.operation is Operation.RM_CACHED:
            return ['rm', '--cached', '-r', '--quiet', '--', self.path]
        return ['restore', '--staged', '--', self.path]


class FileEntry:
    """One changed path in the working tree"""
    def __init__(self, name: str, classification: Classification,
                 stage_action: GitAction, unstage_action: GitAction):
        self._name = name
        self.classification = classification
        self._stage_action = stage_action
        self._unstage_action = unstage_action

    @property
    def name(self) -> str:
        return self._name

    @property
    def stage_action(self) -> GitAction:
        return self._stage_action

    @property
    def unstage_action(self) -> GitAction:
        return self._unstage_action

    @property
    def untracked(self) -> bool:
        """Unstaged and never added to the index"""
        return (self.classification is Classification.UNSTAGED
                and self._unstage_action.operation is Operation.RM_CACHED)

    def __eq__(self, other):
        if not isinstance(other, FileEntry):
            return False
        return (self.name == other.name
                and self.classification == other.classification
                and self.stage_action == other.stage_action
                and self.unstage_action == other.unstage_action)

    def __repr__(self):
        return f"FileEntry({self.name!r}, {self.classification.name})"


def interpret_status(code: str, filename: str) -> Tuple[Classification, GitAction, GitAction]:
    """Map a porcelain XY code to a classification and its stage/unstage actions.

    X is the index side, Y the worktree side. Untracked and added files are
    matched before the generic "both sides changed" case: a file that was
    only ever added has no HEAD revision, so it is unstaged with
    ``rm --cached`` rather than ``restore --staged``.
    """
    x, y = code[0], code[1]
    stage = GitAction(ActionKind.STAGE, Operation.ADD, filename)
    remove = GitAction(ActionKind.UNSTAGE, Operation.RM_CACHED, filename)
    restore = GitAction(ActionKind.UNSTAGE, Operation.RESTORE_STAGED, filename)

    if x == '?' and y == '?':
        return Classification.UNSTAGED, stage, remove
    if x == 'A' and y != ' ':
        return Classification.PARTIALLY_STAGED, stage, remove
    if x != ' ' and y != ' ':
        return Classification.PARTIALLY_STAGED, stage, restore
    if x == 'A':
        return Classification.STAGED, stage, remove
    if x != ' ':
        return Classification.STAGED, stage, restore
    return Classification.UNSTAGED, stage, restore


def parse_status_line(record: str) -> Optional[FileEntry]:
    """Parse one ``git status --porcelain -z`` record; None for records too short to hold a path"""
    if len(record) < 4:
        return None

    # Format: XY PATH, with PATH unquoted
    code = record[:2]
    path = record[3:]

    classification, stage_action, unstage_action = interpret_status(code, path)
    return FileEntry(path, classification, stage_action, unstage_action)


def parse_status_output(output: str) -> List[FileEntry]:
    """Parse NUL-separated ``git status --porcelain -z`` output in order"""
    entries = []
    records = iter(output.split('\0'))
    for record in records:
        entry = parse_status_line(record)
        if entry is None:
            continue
        # Renames and copies are followed by their source path
        if 'R' in record[:2] or 'C' in record[:2]:
            next(records, None)
        entries.append(entry)
    return entries


class Repository:
    """A git working tree, accessed through ``runner``"""

    def __init__(self, runner: Runner = run_git, cwd: Optional[str] = None):
        self.runner = runner
        self.cwd = cwd
        self.root: Optional[str] = None

    def git(self, args: Sequence[str]) -> GitResult:
        # Run from repo root so porcelain paths match
        return self.runner(args, self.root or self.cwd)

    def load(self) -> List[FileEntry]:
        """Return changed files in status order; raises NotARepository or StatusQueryFailure"""
        check = self.runner(['rev-parse', '--is-inside-work-tree'], self.cwd)
        if not check.ok or check.stdout.strip() != 'true':
            raise NotARepository()

        toplevel = self.runner(['rev-parse', '--show-toplevel'], self.cwd)
        if toplevel.ok and toplevel.stdout.strip():
            self.root = toplevel.stdout.strip()

        status = self.git(['status', '--porcelain', '-z'])
        if not status.ok:
            raise StatusQueryFailure(status.stderr)

        entries = parse_status_output(status.stdout)
        logger.info("loaded %d changed file(s) from %s", len(entries), self.root or self.cwd)
        return entries

    def run_action(self, action: GitAction) -> GitResult:
        result = self.git(action.argv())
        if not result.ok:
            logger.warning("%s of %s failed: %s", action.kind.value, action.path,
                           result.stderr.strip())
        return result

    def fetch_diff(self, entry: FileEntry) -> str:
        """Diff text for ``entry``; failures come back as a readable message"""
        if entry.untracked:
            return self._read_new_file(entry.name)

        if entry.classification is Classification.STAGED:
            args = ['diff', '--staged', '--', entry.name]
        elif entry.classification is Classification.UNSTAGED:
            args = ['diff', '--', entry.name]
        else:
            args = ['diff', 'HEAD', '--', entry.name]

        result = self.git(args)
        if not result.ok:
            return f"Failed to show diff: {result.stderr.strip()}"
        return result.stdout if result.stdout else f"No changes for {entry.name}"

    def _read_new_file(self, path: str) -> str:
        base = self.root or self.cwd
        full_path = os.path.join(base, path) if base else path
        if os.path.isdir(full_path):
            # Untracked directories are reported as a single "dir/" entry
            files = sorted(
                os.path.relpath(os.path.join(dirpath, name), full_path)
                for dirpath, _, names in os.walk(full_path)
                for name in names
            )
            return f"New directory: {path}\n\n" + "\n".join(files)
        try:
            with open(full_path, 'r', errors='replace') as f:
                content = f.read()
        except OSError as e:
            return f"Cannot read file: {path}\n{e}"
        return f"New file: {path}\n\n{content}"
