from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from .commands import (
    CloneOptions,
    CommandOptions,
    CommitOptions,
    NotesOptions,
    RemoteOptions,
    StatusOptions,
    TagOptions,
)
from .errors import GitExecutionError
from .git_runner import GitRunnerConfig, OutputMode, SafeGitRunner, require_ok
from .models import GitRunResult, StatusReport
from .security import ensure_root, resolve_root

logger = structlog.get_logger()

# Writes (push/pull/clone) need far more room than the read-only tools.
REPOSITORY_CONFIG = GitRunnerConfig(timeout_s=120.0, max_output_chars=10_000_000)


class Repository:
    """
    Handle on a git working tree.

    Simple commands are methods; anything with options goes through a
    CommandOptions subclass and `run`. Mutating methods return the repository
    so calls can be chained:

        Repository.at(path).init().add().commit("Initial commit")
    """

    def __init__(
        self,
        root: str | Path = ".",
        *,
        output: OutputMode = OutputMode.PIPE,
        config: GitRunnerConfig | None = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.output = output
        self.config = config or REPOSITORY_CONFIG

    @classmethod
    def at(cls, root: str | Path, **kwargs: Any) -> Repository:
        """Repository at an existing directory."""
        return cls(resolve_root(root), **kwargs)

    @classmethod
    def clone(
        cls,
        url: str,
        *,
        options: CloneOptions | None = None,
        cwd: str | Path = ".",
        **kwargs: Any,
    ) -> Repository:
        options = options or CloneOptions()
        repo = cls(cwd, **kwargs)
        repo._exec(options.git_args(url), read_only=False, context="clone")
        return cls.at(repo.root / options.target_dir(url), **kwargs)

    def __repr__(self) -> str:
        return f"Repository(root={str(self.root)!r}, output={self.output.value!r})"

    def is_init(self) -> bool:
        git_dir = self.root / ".git"
        return git_dir.is_dir()

    def set_output(self, mode: OutputMode) -> Repository:
        self.output = mode
        return self

    def add(self) -> Repository:
        """`git add --all`; use AddOptions for anything else."""
        self._exec(["add", "--all"], read_only=False, context="add")
        return self

    def commit(self, message: str) -> Repository:
        """Commit with --allow-empty so an unchanged tree is not an error."""
        self.run(CommitOptions(message=message, allow_empty=True))
        return self

    def fetch(self) -> Repository:
        self._exec(["fetch", "--all", "-q"], read_only=False, context="fetch")
        return self

    def init(self) -> Repository:
        """`git init`, creating the directory first if needed."""
        self.root = ensure_root(self.root)
        self._exec(["init", "-q"], read_only=False, context="init")
        return self

    def notes(self, message: str) -> Repository:
        """Attach a note to HEAD."""
        self.run(NotesOptions.add(message=message))
        return self

    def pull(self) -> Repository:
        self._exec(["pull", "-q"], read_only=False, context="pull")
        return self

    def push(self) -> Repository:
        self._exec(["push", "-q"], read_only=False, context="push")
        return self

    def remote(self, name: str, url: str) -> Repository:
        self.run(RemoteOptions.add(name, url))
        return self

    def stash(self) -> Repository:
        self._exec(["stash", "-q"], read_only=False, context="stash")
        return self

    def tag(self, tagname: str) -> Repository:
        self.run(TagOptions.add(tagname))
        return self

    def status(self) -> StatusReport:
        """
        `git status --porcelain=v2 --branch --ignored`, parsed.
        Output is always captured, whatever the repository's output mode.
        """
        options = StatusOptions()
        res = self._exec(
            options.git_args(),
            read_only=options.read_only,
            context="status",
            output=OutputMode.PIPE,
        )
        if res.output_truncated:
            raise GitExecutionError(
                f"git status output exceeded {self.config.max_output_chars} characters; "
                "refusing to parse a truncated report."
            )
        report = options.parse_output(res.stdout)
        logger.debug(
            "git_status_parsed",
            root=str(self.root),
            head=report.branch_head,
            changed=len(report.changed),
            renamed=len(report.renamed),
            unmerged=len(report.unmerged),
            untracked=len(report.untracked),
            ignored=len(report.ignored),
        )
        return report

    def run(self, options: CommandOptions) -> Any:
        """Run any CommandOptions in this repository and parse its output."""
        args = options.git_args()
        res = self._exec(args, read_only=options.read_only, context=args[0])
        return options.parse_output(res.stdout)

    def _exec(
        self,
        args: list[str],
        *,
        read_only: bool,
        context: str,
        output: OutputMode | None = None,
    ) -> GitRunResult:
        runner = SafeGitRunner(self.root, config=self.config)
        res = runner.run(args, read_only=read_only, output=output or self.output)
        return require_ok(res, context=context)
