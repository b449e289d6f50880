from __future__ import annotations

from policylens_core.models import DiffLine


def _hunk_start(header: str) -> int | None:
    """Return the new-file start line from an ``@@ -a,b +c,d @@`` header."""
    try:
        new_file_range = header.split("+")[1].split(" ")[0]
        return int(new_file_range.split(",")[0])
    except (IndexError, ValueError):
        return None


def _target_path(line: str) -> str | None:
    path = line[4:].strip().split("\t")[0]
    if path == "/dev/null":
        return None
    if path.startswith("b/"):
        path = path[2:]
    return path


def parse_added_lines(patch_text: str, path: str | None = None) -> list[DiffLine]:
    """
    Return the added lines of a unified diff, numbered in the new file.

    Accepts both a full ``git diff`` (with ``diff --git`` / ``+++ b/path``
    headers, possibly several files) and a bare per-file patch as returned by
    the GitHub API, in which case ``path`` names the file.
    """
    added: list[DiffLine] = []
    current_path = path
    file_line: int | None = None
    in_header = False

    for line in patch_text.splitlines():
        if line.startswith("diff --git "):
            file_line = None
            continue
        if line.startswith("--- ") and file_line is None:
            in_header = True
            continue
        if line.startswith("+++ ") and in_header:
            current_path = _target_path(line)
            in_header = False
            continue
        if line.startswith("@@"):
            file_line = _hunk_start(line)
            continue
        if file_line is None:
            continue  # extended header lines: index, mode, rename, Binary files ...

        if line.startswith("+"):
            added.append(DiffLine(line_number=file_line, text=line[1:], path=current_path))
            file_line += 1
        elif line.startswith("-"):
            pass  # removed lines do not advance the new-file counter
        elif line.startswith("\\"):
            pass  # "\ No newline at end of file"
        else:
            file_line += 1

    return added
