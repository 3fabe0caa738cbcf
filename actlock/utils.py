"""
Utility functions for actlock
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

WORKFLOW_EXTENSIONS = (".yml", ".yaml")


def setup_logging(verbosity: int) -> None:
    """Set up logging based on verbosity level."""
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    # Configure logging format
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    if verbosity >= 2:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ],
        force=True,
    )

    # Reduce noise from external libraries
    if verbosity < 3:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)


def find_workflow_files(directory: Path) -> List[Path]:
    """Find the workflow files directly inside a workflows directory.

    Hidden files, subdirectories and files without a .yml/.yaml extension
    are skipped.
    """
    workflow_files = []
    for entry in directory.iterdir():
        if entry.is_dir() or entry.name.startswith('.'):
            continue
        if entry.suffix not in WORKFLOW_EXTENSIONS:
            logging.getLogger(__name__).info(f"Skipping non-YAML file: {entry.name}")
            continue
        workflow_files.append(entry)

    return sorted(workflow_files)


def validate_workflow_file_path(file_path: Union[str, Path], root: Optional[Path] = None) -> Path:
    """Check that a workflow path stays inside the project root.

    The root defaults to the current working directory. Returns the
    resolved path, or raises ValueError.
    """
    raw = str(file_path)
    if ".." in Path(raw).parts:
        raise ValueError(f"workflow path {raw!r} contains '..'")

    root = (root or Path.cwd()).resolve()
    resolved = Path(raw).resolve()
    if resolved != root and root not in resolved.parents:
        raise ValueError(f"workflow path {raw!r} resolves outside project root {str(root)!r}")

    return resolved
