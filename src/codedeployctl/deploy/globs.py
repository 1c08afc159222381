"""Ant-style include/exclude glob filtering of a directory tree.

Patterns are matched against POSIX paths relative to the scanned root:

- ``*`` and ``?`` match within one path segment
- ``[abc]`` / ``[!abc]`` match one character of a set
- ``**`` as a whole segment matches any number of directories
- a trailing ``/`` matches everything below that directory
"""

import os
import re
from pathlib import Path
from typing import Iterable, Iterator

DEFAULT_EXCLUDES = (
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS",
    "**/CVS/**",
    "**/.cvsignore",
    "**/SCCS",
    "**/SCCS/**",
    "**/vssver.scc",
    "**/.svn",
    "**/.svn/**",
    "**/.DS_Store",
    "**/.git",
    "**/.git/**",
    "**/.gitattributes",
    "**/.gitignore",
    "**/.gitmodules",
    "**/.hg",
    "**/.hg/**",
    "**/.hgignore",
    "**/.hgsub",
    "**/.hgsubstate",
    "**/.hgtags",
    "**/.bzr",
    "**/.bzr/**",
    "**/.bzrignore",
)


def split_patterns(patterns: str | Iterable[str] | None) -> list[str]:
    """Split a comma/whitespace separated pattern string into patterns."""
    if patterns is None:
        return []
    if isinstance(patterns, str):
        items: Iterable[str] = re.split(r"[,\s]+", patterns)
    else:
        items = patterns
    return [p.strip() for p in items if p and p.strip()]


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        i += 1
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i
            if j < n and segment[j] in "!^":
                j += 1
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            if j >= n:
                out.append(re.escape(c))
                continue
            content = segment[i:j]
            i = j + 1
            negate = content[0] in "!^"
            body = content[1:] if negate else content
            body = body.replace("\\", "\\\\").replace("[", "\\[")
            # A leading ] is a member of the set, not its end
            if body.startswith("]"):
                body = "\\" + body
            out.append(f"[^/{body}]" if negate else f"[{body}]")
        else:
            out.append(re.escape(c))
    return "".join(out)


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile one Ant-style pattern to a regular expression."""
    pattern = pattern.replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    pattern = pattern.lstrip("/")
    if pattern.endswith("/") or not pattern:
        pattern += "**"

    parts = pattern.split("/")
    regex: list[str] = []
    for index, part in enumerate(parts):
        last = index == len(parts) - 1
        if part == "**":
            regex.append(".*" if last else "(?:[^/]+/)*")
        else:
            regex.append(_translate_segment(part) + ("" if last else "/"))
    return re.compile("".join(regex))


class GlobFilter:
    """Include-then-exclude file filter."""

    def __init__(
        self,
        includes: str | Iterable[str] | None = None,
        excludes: str | Iterable[str] | None = None,
        use_default_excludes: bool = True,
    ):
        self.includes = split_patterns(includes) or ["**"]
        self.excludes = split_patterns(excludes)
        if use_default_excludes:
            self.excludes.extend(DEFAULT_EXCLUDES)
        self._include_res = [compile_pattern(p) for p in self.includes]
        self._exclude_res = [compile_pattern(p) for p in self.excludes]

    def matches(self, relative_path: str) -> bool:
        """Check a POSIX relative path against the include and exclude lists."""
        if not any(r.fullmatch(relative_path) for r in self._include_res):
            return False
        return not any(r.fullmatch(relative_path) for r in self._exclude_res)

    def scan(self, root: Path) -> Iterator[tuple[Path, str]]:
        """Yield (absolute path, relative POSIX path) for every matching file.

        Directories are walked in sorted order so repeated scans of the same
        tree produce the same sequence.
        """
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            base = Path(dirpath)
            for filename in sorted(filenames):
                path = base / filename
                relative = path.relative_to(root).as_posix()
                if self.matches(relative):
                    yield path, relative
