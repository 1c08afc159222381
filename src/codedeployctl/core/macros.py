"""Environment variable macro substitution for configuration strings."""

import re
from typing import Mapping

# ${NAME} or $NAME
MACRO_PATTERN = re.compile(r"\$(?:\{([A-Za-z0-9_.]+)\}|([A-Za-z0-9_]+))")


def expand_macros(value: str | None, environ: Mapping[str, str]) -> str | None:
    """Replace ``${NAME}`` and ``$NAME`` placeholders with environment values.

    Placeholders without a matching variable are left untouched so a missing
    variable shows up verbatim in logs instead of silently becoming empty.

    Args:
        value: String that may contain placeholders
        environ: Variables available for substitution

    Returns:
        The expanded string, or None when value is None
    """
    if value is None:
        return None

    def replace(match: re.Match[str]) -> str:
        name = match.group(1) or match.group(2)
        if name in environ:
            return environ[name]
        return match.group(0)

    return MACRO_PATTERN.sub(replace, value)


def parse_env_assignments(assignments: tuple[str, ...] | list[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` strings into a dictionary.

    Raises:
        ValueError: If an assignment has no '=' or an empty key
    """
    result: dict[str, str] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid environment assignment '{assignment}', expected KEY=VALUE")
        result[key] = value
    return result
