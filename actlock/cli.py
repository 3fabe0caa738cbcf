import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .cache import ResponseCache
from .errors import WorkflowFileError, WorkflowStructureError
from .github_api import GitHubAPI
from .models import Mode
from .rewriter import apply_updates_to_lines
from .utils import find_workflow_files, setup_logging, validate_workflow_file_path
from .walker import WorkflowWalker
from .workflow_parser import WorkflowParser

DEFAULT_WORKFLOW_DIR = Path(".github") / "workflows"


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="actlock",
        description="actlock locks GitHub Actions to commit SHAs for greater security.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                  pin every workflow in .github/workflows
  %(prog)s --update                         move pinned actions to their latest release
  %(prog)s --workflow-file ci.yml --dry-run
  %(prog)s --clear-cache --force
        """
    )

    # Input options
    input_group = parser.add_mutually_exclusive_group()
    input_group.add_argument(
        "--workflow-file", "-f",
        type=Path,
        help="Path to a specific workflow file"
    )
    input_group.add_argument(
        "--workflow-dir", "-d",
        type=Path,
        help=f"Directory containing workflow files (default: {DEFAULT_WORKFLOW_DIR})"
    )

    # Action options
    parser.add_argument(
        "--update", "-u",
        action="store_true",
        help="Update actions to the SHA of their latest release instead of pinning the current ref"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes"
    )
    parser.add_argument(
        "--comment-spacing",
        type=int,
        default=1,
        help="Number of spaces between the SHA and the '#' comment, at least 1 (default: 1)"
    )

    # Output options
    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file for a JSON report of the changes"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase verbosity (use -v, -vv, or -vvv)"
    )

    # GitHub API options
    parser.add_argument(
        "--github-token",
        help="GitHub API token (or set GITHUB_TOKEN environment variable)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10,
        help="Timeout in seconds for each GitHub API request (default: 10)"
    )
    parser.add_argument(
        "--deadline",
        type=float,
        help="Give up on GitHub API requests after this many seconds in total"
    )

    # Cache options
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not read or write the local response cache"
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Delete the local response cache and exit"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Confirm deletion with --clear-cache"
    )

    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Validate command-line arguments."""
    if args.comment_spacing < 1:
        raise ValueError("--comment-spacing must be at least 1")

    if args.timeout <= 0:
        raise ValueError("--timeout must be positive")

    if args.deadline is not None and args.deadline <= 0:
        raise ValueError("--deadline must be positive")

    if args.workflow_file and not args.workflow_file.exists():
        raise FileNotFoundError(f"Workflow file not found: {args.workflow_file}")

    if args.workflow_dir and not args.workflow_dir.exists():
        raise FileNotFoundError(f"Workflow directory not found: {args.workflow_dir}")


def clear_cache(force: bool) -> int:
    """Delete the response cache directory."""
    cache = ResponseCache()
    if not cache.cache_dir.exists():
        print(f"Cache directory '{cache.cache_dir}' does not exist. Nothing to clear.")
        return 0

    if not force:
        logging.error(f"Cache directory '{cache.cache_dir}' exists. Use the --force flag to confirm deletion")
        return 1

    print(f"Removing cache directory '{cache.cache_dir}'...")
    try:
        cache.clear()
    except OSError as e:
        logging.error(f"Failed removing cache directory '{cache.cache_dir}': {e}")
        return 1

    print(f"Cache directory '{cache.cache_dir}' removed successfully.")
    return 0


def update_workflow_file(
    workflow_file: Path,
    parser: WorkflowParser,
    walker: WorkflowWalker,
    mode: Mode,
    dry_run: bool = False,
) -> Dict[int, str]:
    """Pin or update the actions of one workflow file.

    The whole new content is built in memory and written back once, and
    only if something changed. Returns the line edits that were found.
    """
    workflow = parser.parse_workflow(workflow_file)
    if workflow.is_empty:
        return {}

    try:
        updates, count = walker.walk(workflow.root, mode)
    except WorkflowStructureError as e:
        raise WorkflowFileError(str(workflow_file), str(e)) from e

    if count and not dry_run:
        logging.info(f"Applying {count} update(s) to {workflow_file}")
        parser.save_workflow(workflow_file, apply_updates_to_lines(workflow.text, updates))

    return updates


def process_workflows(
    workflow_files: List[Path],
    args: argparse.Namespace,
    github_api: GitHubAPI,
) -> dict:
    """Process workflow files and return results."""
    mode = Mode.UPDATE if args.update else Mode.PIN
    results = {
        "mode": mode.value,
        "processed_files": [],
        "errors": [],
        "rate_limit_hits": 0,
    }

    parser = WorkflowParser()
    walker = WorkflowWalker(github_api, comment_spacing=args.comment_spacing)

    for workflow_file in workflow_files:
        logging.info(f"Processing workflow file: {workflow_file}")

        try:
            validate_workflow_file_path(workflow_file)
            updates = update_workflow_file(workflow_file, parser, walker, mode, dry_run=args.dry_run)
        except (WorkflowFileError, ValueError) as e:
            logging.error(f"Failed to process {workflow_file}: {e}")
            results["errors"].append({
                "file": str(workflow_file),
                "error": str(e)
            })
            continue

        if updates:
            logging.info(f"Updated {len(updates)} action(s) in {workflow_file}")
        else:
            logging.info(f"No actions needed updating in {workflow_file}")

        results["processed_files"].append({
            "file": str(workflow_file),
            "edits": [
                {"line": line, "uses": uses}
                for line, uses in sorted(updates.items())
            ],
        })

    results["rate_limit_hits"] = github_api.rate_limit_hits
    return results


def print_summary(results: dict, dry_run: bool) -> None:
    total_edits = sum(len(f['edits']) for f in results['processed_files'])
    verb = "pinned" if results['mode'] == Mode.PIN.value else "updated"
    if dry_run:
        verb = f"to be {verb}"

    print("\nSummary:")
    print(f"  Processed files: {len(results['processed_files'])}")
    print(f"  Actions {verb}: {total_edits}")

    if results['rate_limit_hits']:
        print(f"  Rate limited requests: {results['rate_limit_hits']}")

    if results['errors']:
        print(f"  Errors: {len(results['errors'])}")
        for error in results['errors']:
            print(f"    - {error['file']}: {error['error']}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)

    if args.clear_cache:
        return clear_cache(args.force)

    try:
        # Validate arguments
        validate_args(args)

        # Find workflow files
        if args.workflow_file:
            workflow_files = [args.workflow_file]
        else:
            workflow_dir = args.workflow_dir or DEFAULT_WORKFLOW_DIR
            if not workflow_dir.is_dir():
                logging.error(f"Workflows directory not found: {workflow_dir}")
                return 1
            workflow_files = find_workflow_files(workflow_dir)
            if not workflow_files:
                logging.warning(f"No workflow files found in {workflow_dir}")
                return 0

        logging.info(f"Found {len(workflow_files)} workflow file(s) to process")
        if args.update:
            logging.info("Running in update mode: will update actions to latest versions")
        else:
            logging.info("Running in pin mode: will pin actions to specific SHAs")

        # Initialize GitHub API
        github_api = GitHubAPI(
            token=args.github_token,
            cache=None if args.no_cache else ResponseCache(),
            timeout=args.timeout,
            deadline=args.deadline,
        )
        if args.verbose:
            github_api.log_rate_limit()

        # Process workflows
        results = process_workflows(workflow_files, args, github_api)

        # Output results
        if args.output:
            with open(args.output, 'w', encoding='utf-8') as f:
                json.dump(results, f, indent=2)
            logging.info(f"Results saved to {args.output}")

        print_summary(results, args.dry_run)

        return 0 if not results['errors'] else 1

    except (ValueError, OSError) as e:
        logging.error(f"Fatal error: {e}")
        return 1
