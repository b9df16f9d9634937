"""Line-oriented change summaries between two versions of a text.

The default strategy compares lines by position. It is cheap and good
enough for a summary, but a single inserted line near the top shifts every
later comparison and shows up as a run of modifications. The ``lcs``
strategy aligns lines with difflib first and does not have that problem.
"""

import difflib
from typing import Optional

from pydantic import Field

from promptcollab.collaboration.schemas import CamelModel
from promptcollab.config import settings


class ChangeSummary(CamelModel):
    """Line counts of what changed between two texts."""
    lines_added: int = Field(default=0, ge=0)
    lines_removed: int = Field(default=0, ge=0)
    lines_modified: int = Field(default=0, ge=0)
    total_changes: int = Field(default=0, ge=0)
    change_percentage: int = Field(default=0, ge=0)


def _summary(added: int, removed: int, modified: int, max_lines: int) -> ChangeSummary:
    total = added + removed + modified
    if max_lines > 0:
        # Round half up
        percentage = (total * 200 + max_lines) // (2 * max_lines)
    else:
        percentage = 0
    return ChangeSummary(
        lines_added=added,
        lines_removed=removed,
        lines_modified=modified,
        total_changes=total,
        change_percentage=percentage,
    )


def positional_changes(old_content: str, new_content: str) -> ChangeSummary:
    """Compare line i of the old text with line i of the new text.

    Missing lines and empty lines count the same, so an emptied line is a
    removal and a filled-in blank line is an addition.
    """
    old_lines = old_content.split("\n")
    new_lines = new_content.split("\n")
    max_lines = max(len(old_lines), len(new_lines))

    added = removed = modified = 0
    for i in range(max_lines):
        old_line = old_lines[i] if i < len(old_lines) else ""
        new_line = new_lines[i] if i < len(new_lines) else ""

        if old_line and not new_line:
            removed += 1
        elif not old_line and new_line:
            added += 1
        elif old_line != new_line:
            modified += 1

    return _summary(added, removed, modified, max_lines)


def lcs_changes(old_content: str, new_content: str) -> ChangeSummary:
    """Align lines by longest common subsequence before counting."""
    old_lines = old_content.split("\n")
    new_lines = new_content.split("\n")
    max_lines = max(len(old_lines), len(new_lines))

    added = removed = modified = 0
    matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "insert":
            added += j2 - j1
        elif tag == "delete":
            removed += i2 - i1
        elif tag == "replace":
            paired = min(i2 - i1, j2 - j1)
            modified += paired
            removed += (i2 - i1) - paired
            added += (j2 - j1) - paired

    return _summary(added, removed, modified, max_lines)


STRATEGIES = {
    "positional": positional_changes,
    "lcs": lcs_changes,
}


def calculate_changes(old_content: str, new_content: str, strategy: Optional[str] = None) -> ChangeSummary:
    """Summarize the change from old_content to new_content."""
    name = strategy or settings.diff_strategy
    try:
        compare = STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown diff strategy: {name}")
    return compare(old_content or "", new_content or "")
