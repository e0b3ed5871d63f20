"""Human-readable previews of plan files."""

from __future__ import annotations

from typing import Iterable, Optional

DEFAULT_HEADINGS = ("## implementation", "## steps", "## plan")
ELLIPSIS = "..."


def extract_plan_preview(
    content: str,
    max_lines: int,
    max_chars: int,
    headings: Optional[Iterable[str]] = DEFAULT_HEADINGS,
) -> str:
    """Return the steps section of a plan, or its opening characters.

    The section starts at the first line containing one of ``headings``
    (case-insensitive) and stops before the next line starting with ``##``
    or after ``max_lines`` lines, whichever comes first. Without such a line
    the preview is the first ``max_chars`` characters plus an ellipsis.

    >>> extract_plan_preview("## Steps\\nA\\nB\\n## Next\\nC", 30, 500)
    '## Steps\\nA\\nB'
    """
    lines = content.split("\n")
    markers = [h.lower() for h in (headings or ())]

    start = next(
        (i for i, line in enumerate(lines) if any(m in line.lower() for m in markers)),
        None,
    )
    if start is None:
        return content[:max_chars] + ELLIPSIS

    end = min(len(lines), start + max_lines)
    for i in range(start + 1, end):
        if lines[i].startswith("##"):
            end = i
            break
    return "\n".join(lines[start:end])


__all__ = ["extract_plan_preview", "DEFAULT_HEADINGS"]
