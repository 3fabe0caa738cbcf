"""
Exceptions raised by actlock
"""

from .models import ActionReference, RefKind


class ActlockError(Exception):
    """Base class for all actlock errors."""


class ActionReferenceError(ActlockError, ValueError):
    """A 'uses' value could not be parsed."""

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw
        self.reference = ActionReference(kind=RefKind.MALFORMED, raw=raw)


class EmptyReferenceError(ActionReferenceError):
    def __init__(self, raw: str = ""):
        super().__init__("empty action reference", raw)


class MissingRefError(ActionReferenceError):
    def __init__(self, raw: str):
        super().__init__(
            f"action reference '{raw}' missing explicit @ref (tag/branch/sha)", raw
        )


class InvalidFormatError(ActionReferenceError):
    def __init__(self, raw: str):
        super().__init__(
            f"invalid action reference '{raw}', expected 'owner/repo@ref'", raw
        )


class InvalidInputError(ActlockError, ValueError):
    """Resolver called without a client or with empty arguments."""


class ReferenceNotFoundError(ActlockError):
    def __init__(self, ref: str, owner: str, repo: str):
        super().__init__(f"reference '{ref}' not found as a commit, tag or branch in {owner}/{repo}")
        self.ref = ref
        self.owner = owner
        self.repo = repo


class NoVersionFoundError(ActlockError):
    def __init__(self, owner: str, repo: str, reason: str = ""):
        message = f"no release or tag found for {owner}/{repo}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.owner = owner
        self.repo = repo


class WorkflowStructureError(ActlockError):
    """The workflow's YAML tree could not be traversed."""


class WorkflowFileError(ActlockError):
    """A workflow file could not be read, parsed or written."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
