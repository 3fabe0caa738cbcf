"""
Find the 'uses:' entries of a workflow that need pinning or updating
"""

import logging
from typing import Dict, Optional, Set, Tuple

import yaml

from .errors import (
    ActionReferenceError,
    InvalidInputError,
    NoVersionFoundError,
    ReferenceNotFoundError,
    WorkflowStructureError,
)
from .models import ActionReference, LineEdit, LookupStatus, Mode, RefKind, ResolvedCommit
from .resolver import get_latest_action_ref, resolve_ref_to_sha
from .workflow_parser import parse_action_reference

# Failures that only affect a single 'uses:' entry
OCCURRENCE_ERRORS = (
    ActionReferenceError,
    InvalidInputError,
    NoVersionFoundError,
    ReferenceNotFoundError,
)


class WorkflowWalker:
    """Walks a YAML node tree and collects line edits for 'uses:' values.

    Mappings and sequences are searched recursively, so 'uses:' keys are
    found at any depth (job level reusable workflows as well as steps).
    Problems with a single entry are logged and that entry is skipped; only
    a broken tree raises WorkflowStructureError.
    """

    def __init__(self, client, comment_spacing: int = 1):
        if comment_spacing < 1:
            raise ValueError("comment_spacing must be at least 1")
        self.client = client
        self.comment_spacing = comment_spacing
        self.logger = logging.getLogger(__name__)

    def walk(self, root: Optional[yaml.Node], mode: Mode) -> Tuple[Dict[int, str], int]:
        """Return the line number -> new 'uses' value map and the number of edits."""
        edits: Dict[int, str] = {}
        if root is not None:
            self._visit(root, mode, edits, set())
        return edits, len(edits)

    def _visit(self, node: yaml.Node, mode: Mode, edits: Dict[int, str], seen: Set[int]) -> None:
        if not isinstance(node, yaml.Node):
            raise WorkflowStructureError(f"unexpected YAML node {node!r}")

        if isinstance(node, yaml.ScalarNode):
            return

        # Aliases share node objects with their anchor; visit each once
        if id(node) in seen:
            return
        seen.add(id(node))

        if isinstance(node, yaml.MappingNode):
            for item in node.value:
                if not isinstance(item, tuple) or len(item) != 2:
                    raise WorkflowStructureError(
                        f"malformed mapping entry at line {node.start_mark.line + 1}"
                    )
                key_node, value_node = item
                if self._is_alias(key_node, value_node):
                    # 'uses: *anchor' has no text of its own on this line
                    self.logger.debug(
                        f"Skipping aliased value of '{key_node.value}' on line {key_node.start_mark.line + 1}"
                    )
                    continue
                if (
                    isinstance(key_node, yaml.ScalarNode)
                    and key_node.value == "uses"
                    and isinstance(value_node, yaml.ScalarNode)
                ):
                    self._handle_uses(value_node, mode, edits)
                else:
                    self._visit(value_node, mode, edits, seen)
        elif isinstance(node, yaml.SequenceNode):
            for item_node in node.value:
                self._visit(item_node, mode, edits, seen)
        else:
            raise WorkflowStructureError(f"unsupported YAML node {type(node).__name__}")

    @staticmethod
    def _is_alias(key_node: yaml.Node, value_node: yaml.Node) -> bool:
        """An aliased scalar is the anchor's node, which starts before its key."""
        return (
            isinstance(key_node, yaml.Node)
            and isinstance(value_node, yaml.ScalarNode)
            and value_node.start_mark.index < key_node.end_mark.index
        )

    def _handle_uses(self, value_node: yaml.ScalarNode, mode: Mode, edits: Dict[int, str]) -> None:
        uses = value_node.value
        line = value_node.start_mark.line + 1

        if line in edits:
            return

        try:
            reference = parse_action_reference(uses)
        except ActionReferenceError as e:
            self.logger.warning(f"Skipping 'uses: {uses}' on line {line}: {e}")
            return

        if not reference.is_remote or not reference.owner or not reference.repo:
            self.logger.debug(f"Skipping {reference.kind.value} reference '{uses}' on line {line}")
            return

        try:
            if mode is Mode.UPDATE:
                commit = self._latest(reference, line)
            else:
                commit = self._pin(reference, line)
        except OCCURRENCE_ERRORS as e:
            self.logger.warning(f"Skipping '{uses}' on line {line}: {e}")
            return

        if commit is not None:
            edit = LineEdit(line, reference.pinned_uses(commit.sha, commit.original_ref, self.comment_spacing))
            edits.setdefault(edit.line_number, edit.replacement)

    def _pin(self, reference: ActionReference, line: int) -> Optional[ResolvedCommit]:
        if reference.is_pinned:
            self.logger.info(f"'{reference}' on line {line} already pinned to SHA")
            return None

        ref = reference.ref
        if reference.kind is RefKind.REUSABLE_WORKFLOW and not ref:
            ref = self._default_branch(reference)
            if ref is None:
                return None

        sha = resolve_ref_to_sha(self.client, reference.owner, reference.repo, ref)
        self.logger.info(f"Pinned {reference.owner}/{reference.repo_path}@{ref} to SHA {sha[:8]} (line {line})")
        return ResolvedCommit(sha, ref)

    def _latest(self, reference: ActionReference, line: int) -> Optional[ResolvedCommit]:
        latest_ref, sha = get_latest_action_ref(self.client, reference.owner, reference.repo)
        if reference.ref == sha:
            self.logger.info(
                f"{reference.owner}/{reference.repo_path} already up-to-date with SHA {sha[:8]} "
                f"(latest ref: {latest_ref}, line {line})"
            )
            return None

        self.logger.info(
            f"Updating {reference} to SHA {sha[:8]} (latest ref: {latest_ref}, line {line})"
        )
        return ResolvedCommit(sha, latest_ref)

    def _default_branch(self, reference: ActionReference) -> Optional[str]:
        """Find the default branch of a reusable workflow's repository.

        A timeout here aborts the whole file rather than the single entry.
        """
        owner, repo = reference.owner, reference.repo
        self.logger.info(f"No ref specified for workflow {reference.raw}. Resolving default branch for {owner}/{repo}.")

        result = self.client.get_repository(owner, repo)
        if result.status is LookupStatus.TIMEOUT:
            raise WorkflowStructureError(
                f"timed out getting repository info for {owner}/{repo}: {result.reason}"
            )
        if not result.is_found or not result.value.default_branch:
            self.logger.warning(
                f"Could not determine default branch for {owner}/{repo}: {result.reason or 'not set'}"
            )
            return None

        branch = result.value.default_branch
        self.logger.info(f"  Using default branch '{branch}' for {owner}/{repo}")
        return branch
