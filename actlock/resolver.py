"""
Resolve git refs to commit SHAs and find the latest version of an action
"""

import logging
from typing import Tuple

from .errors import InvalidInputError, NoVersionFoundError, ReferenceNotFoundError
from .models import LookupResult, LookupStatus, is_full_sha

logger = logging.getLogger(__name__)

LATEST_TAGS_PAGE_SIZE = 10


def verify_commit_sha(client, owner: str, repo: str, ref: str) -> LookupResult:
    """Check whether ref is a full SHA of a commit that exists in the repository."""
    if not is_full_sha(ref):
        return LookupResult.not_found(f"'{ref}' is not a full commit SHA")

    result = client.get_commit(owner, repo, ref)
    if result.is_found:
        # The ref itself is the answer, unchanged
        return LookupResult.found(ref)
    return result


def resolve_tag_to_sha(client, owner: str, repo: str, ref: str) -> LookupResult:
    """Resolve a tag name to the commit it points at.

    Lightweight tags point straight at a commit. Annotated tags point at a
    tag object, which is fetched to find the commit behind it. Any other
    object type is an error rather than a miss, so it can never resolve
    to the wrong object.
    """
    result = client.get_ref(owner, repo, f"tags/{ref}")
    if not result.is_found:
        return result

    git_ref = result.value
    if git_ref.object_type == "commit":
        return LookupResult.found(git_ref.sha)

    if git_ref.object_type != "tag":
        return LookupResult.error(
            f"tag '{ref}' in {owner}/{repo} points to a {git_ref.object_type}, not a commit or tag object"
        )

    tag_result = client.get_tag(owner, repo, git_ref.sha)
    if tag_result.is_not_found:
        return LookupResult.error(f"tag object {git_ref.sha} for '{ref}' in {owner}/{repo} not found")
    if not tag_result.is_found:
        return tag_result

    tag = tag_result.value
    if tag.object_type != "commit":
        return LookupResult.error(
            f"annotated tag '{ref}' in {owner}/{repo} points to a {tag.object_type}, not a commit"
        )
    return LookupResult.found(tag.object_sha)


def resolve_branch_to_sha(client, owner: str, repo: str, ref: str) -> LookupResult:
    """Resolve a branch name to its head commit."""
    result = client.get_ref(owner, repo, f"heads/{ref}")
    if not result.is_found:
        return result

    git_ref = result.value
    if git_ref.object_type != "commit":
        return LookupResult.error(
            f"branch '{ref}' in {owner}/{repo} points to a {git_ref.object_type}, not a commit"
        )
    return LookupResult.found(git_ref.sha)


def resolve_ref_to_sha(client, owner: str, repo: str, ref: str) -> str:
    """Find the commit SHA for a ref (commit SHA, tag or branch).

    Checks, in order, whether ref is an existing commit SHA, a tag and a
    branch. A miss falls through to the next check; an error is logged
    and also falls through. Raises ReferenceNotFoundError if nothing matched.
    """
    if client is None:
        raise InvalidInputError("github client is missing")
    if not owner or not repo or not ref:
        raise InvalidInputError("owner, repo, and ref must not be empty")

    steps = (
        ("commit", verify_commit_sha),
        ("tag", resolve_tag_to_sha),
        ("branch", resolve_branch_to_sha),
    )
    for name, step in steps:
        result = step(client, owner, repo, ref)
        if result.is_found:
            logger.debug(f"Resolved {owner}/{repo}@{ref} via {name} to SHA: {result.value}")
            return result.value
        if result.status in (LookupStatus.ERROR, LookupStatus.TIMEOUT):
            logger.warning(f"Error checking {name} '{ref}' in {owner}/{repo}: {result.reason}")

    raise ReferenceNotFoundError(ref, owner, repo)


def get_latest_action_ref(client, owner: str, repo: str) -> Tuple[str, str]:
    """Get the latest release tag (or newest tag) of a repository and its commit SHA.

    The latest release is whatever GitHub marks as latest, which is not
    necessarily the highest version number.
    """
    release = client.get_latest_release(owner, repo)
    if release.is_found and release.value.tag_name:
        tag_name = release.value.tag_name
        try:
            return tag_name, resolve_ref_to_sha(client, owner, repo, tag_name)
        except ReferenceNotFoundError as e:
            logger.debug(f"Latest release tag of {owner}/{repo} did not resolve: {e}")
    elif release.status in (LookupStatus.ERROR, LookupStatus.TIMEOUT):
        logger.warning(f"Could not get latest release for {owner}/{repo}: {release.reason}")

    tags = client.list_tags(owner, repo, per_page=LATEST_TAGS_PAGE_SIZE)
    if not tags.is_found:
        raise NoVersionFoundError(owner, repo, tags.reason)
    if not tags.value:
        raise NoVersionFoundError(owner, repo)

    latest = tags.value[0]
    return latest.name, latest.commit_sha
