"""
Data models for actlock
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import re

SHA_LENGTH = 40

_FULL_SHA = re.compile(rf'^[0-9a-fA-F]{{{SHA_LENGTH}}}$')


def is_full_sha(ref: Optional[str]) -> bool:
    """Check if a ref is a full 40 character hexadecimal commit SHA."""
    return bool(ref) and _FULL_SHA.match(ref) is not None


class RefKind(Enum):
    """Type tag for a parsed 'uses' value."""
    GITHUB_ACTION = "github"
    REUSABLE_WORKFLOW = "workflow"
    CONTAINER_IMAGE = "docker"
    LOCAL_PATH = "local"
    MALFORMED = "malformed"


class Mode(Enum):
    """What to do with each action reference."""
    PIN = "pin"
    UPDATE = "update"


@dataclass(frozen=True)
class ActionReference:
    """Represents a parsed 'uses' value from a workflow."""

    kind: RefKind
    raw: str
    owner: str = ""
    repo_path: str = ""
    ref: str = ""

    @property
    def repo(self) -> str:
        """Repository name without any action or workflow subpath."""
        return self.repo_path.split('/', 1)[0]

    @property
    def is_remote(self) -> bool:
        return self.kind in (RefKind.GITHUB_ACTION, RefKind.REUSABLE_WORKFLOW)

    @property
    def is_pinned(self) -> bool:
        """Already pinned if ref looks like a SHA (40 hex characters)."""
        return is_full_sha(self.ref)

    def pinned_uses(self, sha: str, comment_ref: str, comment_spacing: int = 1) -> str:
        """Get the uses string pinned to a SHA, keeping the ref as a comment."""
        return f"{self.owner}/{self.repo_path}@{sha}{' ' * comment_spacing}#{comment_ref}"

    def __str__(self) -> str:
        if self.is_remote:
            return f"{self.owner}/{self.repo_path}@{self.ref}"
        return self.raw


@dataclass(frozen=True)
class ResolvedCommit:
    """A commit SHA together with the ref it was resolved from."""
    sha: str
    original_ref: str


@dataclass(frozen=True)
class LineEdit:
    """One pending rewrite of a 'uses:' line."""
    line_number: int
    replacement: str


class LookupStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class LookupResult:
    """Outcome of a single remote lookup or resolution step."""

    status: LookupStatus
    value: Any = None
    reason: str = ""

    @classmethod
    def found(cls, value: Any) -> "LookupResult":
        return cls(LookupStatus.FOUND, value)

    @classmethod
    def not_found(cls, reason: str = "") -> "LookupResult":
        return cls(LookupStatus.NOT_FOUND, reason=reason)

    @classmethod
    def error(cls, reason: str) -> "LookupResult":
        return cls(LookupStatus.ERROR, reason=reason)

    @classmethod
    def timeout(cls, reason: str) -> "LookupResult":
        return cls(LookupStatus.TIMEOUT, reason=reason)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND

    @property
    def is_not_found(self) -> bool:
        return self.status is LookupStatus.NOT_FOUND


# Typed views of the GitHub API responses. Optional fields are only read
# when a response is converted, see GitHubAPI.


@dataclass(frozen=True)
class GitRef:
    ref: str
    object_type: str
    sha: str


@dataclass(frozen=True)
class TagObject:
    sha: str
    object_type: str
    object_sha: str


@dataclass(frozen=True)
class Release:
    tag_name: Optional[str]


@dataclass(frozen=True)
class Tag:
    name: str
    commit_sha: str


@dataclass(frozen=True)
class Repository:
    full_name: str
    default_branch: Optional[str]


@dataclass
class Workflow:
    """A workflow file: its raw text and the YAML node tree built from it."""

    path: str
    text: str
    root: Any

    @property
    def is_empty(self) -> bool:
        return self.root is None
