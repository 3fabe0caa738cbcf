"""
Apply 'uses:' line edits to the raw text of a workflow file
"""

import logging
from typing import Dict

logger = logging.getLogger(__name__)


def apply_updates_to_lines(original_content: str, updates: Dict[int, str]) -> str:
    """Rebuild the content with the 'uses:' value of the given lines replaced.

    Keys of updates are 1-based line numbers. Only the text after 'uses: '
    changes; indentation, a leading '- ' and a trailing '\\r' are kept. If a
    flagged line does not start with 'uses:' or '- uses:' it is left alone.
    All other lines, and the presence or absence of a final newline, are
    preserved exactly.
    """
    if not updates:
        return original_content

    lines = original_content.split('\n')
    output = []

    for index, line in enumerate(lines):
        line_number = index + 1
        new_uses_value = updates.get(line_number)
        if new_uses_value is None:
            output.append(line)
            continue

        trimmed = line.strip()
        if trimmed.startswith('- uses:'):
            marker = '- '
        elif trimmed.startswith('uses:'):
            marker = ''
        else:
            logger.warning(
                f"Update found for line {line_number}, but line content '{line}' "
                f"does not look like a 'uses:' line. Keeping original."
            )
            output.append(line)
            continue

        indentation = line[:len(line) - len(line.lstrip(' \t'))]
        line_ending = '\r' if line.endswith('\r') else ''
        output.append(f"{indentation}{marker}uses: {new_uses_value}{line_ending}")

    return '\n'.join(output)
