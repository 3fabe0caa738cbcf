"""
GitHub Actions workflow parser module
"""

import logging
from pathlib import Path
from typing import Union

import yaml

from .errors import (
    EmptyReferenceError,
    InvalidFormatError,
    MissingRefError,
    WorkflowFileError,
)
from .models import ActionReference, RefKind, Workflow

DOCKER_PREFIX = "docker://"
WORKFLOW_SUFFIXES = (".yml", ".yaml")


def _is_workflow_path(repo_path: str) -> bool:
    return any(part.endswith(WORKFLOW_SUFFIXES) for part in repo_path.split('/'))


def parse_action_reference(uses: str) -> ActionReference:
    """Parse a 'uses' value into an ActionReference.

    Handles the different formats:
    - actions/checkout@v4
    - actions/aws/s3-upload@v1 (action in a subdirectory)
    - octo-org/repo/.github/workflows/build.yml@main (reusable workflow)
    - ./local-action, ../shared/action
    - docker://image:tag

    Raises an ActionReferenceError subclass if the value is malformed.
    """
    if not uses:
        raise EmptyReferenceError(uses)

    if uses.startswith('./') or uses.startswith('../'):
        return ActionReference(kind=RefKind.LOCAL_PATH, raw=uses)

    if uses.startswith(DOCKER_PREFIX):
        image, _, tag = uses[len(DOCKER_PREFIX):].partition(':')
        return ActionReference(
            kind=RefKind.CONTAINER_IMAGE,
            raw=uses,
            repo_path=image,
            ref=tag or "latest",
        )

    path, sep, ref = uses.partition('@')
    if not sep:
        raise MissingRefError(uses)

    owner, sep, repo_path = path.partition('/')
    if not sep or not owner or not repo_path:
        raise InvalidFormatError(uses)

    kind = RefKind.REUSABLE_WORKFLOW if _is_workflow_path(repo_path) else RefKind.GITHUB_ACTION

    # Only reusable workflows may omit the ref, meaning the default branch
    if not ref and kind is not RefKind.REUSABLE_WORKFLOW:
        raise InvalidFormatError(uses)

    return ActionReference(kind=kind, raw=uses, owner=owner, repo_path=repo_path, ref=ref)


class WorkflowParser:
    """Parser for GitHub Actions workflow files."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def parse_workflow(self, workflow_path: Union[str, Path]) -> Workflow:
        """Read a workflow file and build its YAML node tree.

        The node tree keeps the line numbers the walker needs. An empty file
        yields a Workflow whose root is None.
        """
        path = Path(workflow_path)
        try:
            with open(path, 'r', encoding='utf-8', newline='') as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise WorkflowFileError(str(path), f"cannot read file: {e}") from e

        if not text.strip():
            self.logger.info(f"Skipping empty file: {path}")
            return Workflow(str(path), text, None)

        try:
            root = yaml.compose(text, Loader=yaml.SafeLoader)
        except yaml.YAMLError as e:
            raise WorkflowFileError(str(path), f"invalid YAML: {e}") from e

        return Workflow(str(path), text, root)

    def save_workflow(self, workflow_path: Union[str, Path], content: str) -> None:
        """Write the rewritten workflow content back to the file in one go."""
        path = Path(workflow_path)
        try:
            with open(path, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
        except OSError as e:
            raise WorkflowFileError(str(path), f"cannot write file: {e}") from e

        self.logger.info(f"Updated workflow file: {path}")
