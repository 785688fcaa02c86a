from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from .parsers import parse_status_v2
from .models import StatusReport

if TYPE_CHECKING:
    from .repository import Repository


class CommandOptions:
    """
    Base for git subcommand option sets.

    Subclasses build the argument list (without the leading 'git') and turn
    captured stdout into a Python value.
    """

    # Mutating commands must bypass the runner's read-only policy.
    read_only: ClassVar[bool] = False

    def git_args(self) -> list[str]:
        raise NotImplementedError

    def parse_output(self, out: str) -> Any:
        return None

    def run(self, repo: Repository) -> Any:
        return repo.run(self)


@dataclass
class AddOptions(CommandOptions):
    all: bool | None = None
    chmod: bool | None = None
    pathspecs: list[str] = field(default_factory=list)

    def git_args(self) -> list[str]:
        args = ["add"]
        if self.all is not None:
            args.append("--all" if self.all else "--no-all")
        if self.chmod is not None:
            args.append("--chmod=+x" if self.chmod else "--chmod=-x")
        args.extend(str(p) for p in self.pathspecs)
        return args


@dataclass
class CommitOptions(CommandOptions):
    message: str = ""
    all: bool = False
    allow_empty: bool = False
    amend: bool = False
    files: list[str] = field(default_factory=list)

    def git_args(self) -> list[str]:
        args = ["commit", "-q"]
        if self.message:
            args.extend(["-m", self.message])
        if self.all:
            args.append("--all")
        if self.allow_empty:
            args.append("--allow-empty")
        if self.amend:
            args.append("--amend")
        args.extend(str(f) for f in self.files)
        return args


NotesAction = Literal["add", "append", "remove"]


@dataclass
class NotesOptions(CommandOptions):
    action: NotesAction = "add"
    message: str = ""
    object: str = ""

    @classmethod
    def add(cls, **kwargs: Any) -> NotesOptions:
        return cls(action="add", **kwargs)

    @classmethod
    def append(cls, **kwargs: Any) -> NotesOptions:
        return cls(action="append", **kwargs)

    @classmethod
    def remove(cls, **kwargs: Any) -> NotesOptions:
        return cls(action="remove", **kwargs)

    def git_args(self) -> list[str]:
        args = ["notes", self.action]
        if self.message:
            args.extend(["-m", self.message])
        if self.object:
            args.append(self.object)
        return args


@dataclass
class PullOptions(CommandOptions):
    allow_unrelated: bool = False
    remote: str = ""
    refspecs: list[str] = field(default_factory=list)

    def git_args(self) -> list[str]:
        args = ["pull", "-q"]
        if self.allow_unrelated:
            args.append("--allow-unrelated-histories")
        if self.remote:
            args.append(self.remote)
        args.extend(self.refspecs)
        return args


@dataclass
class PushOptions(CommandOptions):
    all: bool = False
    tags: bool = False
    force: bool = False
    set_upstream: bool = False
    remote: str = ""
    refspecs: list[str] = field(default_factory=list)

    def git_args(self) -> list[str]:
        args = ["push", "-q"]
        if self.all:
            args.append("--all")
        if self.tags:
            args.append("--tags")
        if self.force:
            args.append("--force")
        if self.set_upstream:
            args.append("--set-upstream")
        if self.remote:
            args.append(self.remote)
        args.extend(self.refspecs)
        return args


@dataclass
class RemoteOptions(CommandOptions):
    name: str
    url: str
    master: str = ""
    tags: bool | None = None

    @classmethod
    def add(cls, name: str, url: str, **kwargs: Any) -> RemoteOptions:
        return cls(name=name, url=url, **kwargs)

    def git_args(self) -> list[str]:
        args = ["remote", "add"]
        if self.master:
            args.extend(["-m", self.master])
        if self.tags is not None:
            args.append("--tags" if self.tags else "--no-tags")
        args.extend([self.name, self.url])
        return args


TagAction = Literal["add", "delete"]


@dataclass
class TagOptions(CommandOptions):
    tagname: str
    action: TagAction = "add"
    message: str = ""
    # commit or any other object the tag points at
    object: str = ""

    @classmethod
    def add(cls, tagname: str, **kwargs: Any) -> TagOptions:
        return cls(tagname=tagname, action="add", **kwargs)

    @classmethod
    def delete(cls, tagname: str) -> TagOptions:
        return cls(tagname=tagname, action="delete")

    def git_args(self) -> list[str]:
        args = ["tag"]
        if self.action == "delete":
            args.append("-d")
        if self.message:
            args.extend(["-m", self.message])
        args.append(self.tagname)
        if self.object:
            args.append(self.object)
        return args


@dataclass
class StatusOptions(CommandOptions):
    """The exact status invocation the porcelain v2 parser expects."""

    read_only: ClassVar[bool] = True

    def git_args(self) -> list[str]:
        return ["status", "--porcelain=v2", "--branch", "--ignored"]

    def parse_output(self, out: str) -> StatusReport:
        return parse_status_v2(out)


@dataclass
class CloneOptions:
    """
    `git clone` runs outside any repository, so it does not go through
    Repository.run; `run` returns a handle on the new checkout.
    """

    branch: str = ""
    origin: str = ""
    directory: str = ""

    def git_args(self, url: str) -> list[str]:
        args = ["clone", "-q"]
        if self.branch:
            args.extend(["--branch", self.branch])
        if self.origin:
            args.extend(["--origin", self.origin])
        args.append(url)
        if self.directory:
            args.append(self.directory)
        return args

    def target_dir(self, url: str) -> str:
        if self.directory:
            return self.directory
        name = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
        return name[:-4] if name.endswith(".git") else name

    def run(self, url: str, cwd: str | Path = ".") -> Repository:
        from .repository import Repository

        return Repository.clone(url, options=self, cwd=cwd)
