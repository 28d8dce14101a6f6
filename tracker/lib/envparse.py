"""
Safe KEY=value parser for tracker.env.

Never executes anything. Values that look like shell expansion are rejected,
since the same file is often sourced by wrapper scripts.
"""

import re
from pathlib import Path

FORBIDDEN_PATTERNS = [
    r'`',           # backticks
    r'\$\(',        # command substitution
    r'\$\{',        # variable expansion
    r';',           # command chaining
    r'&&',
    r'\|',          # pipe / OR chaining
]

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def parse_env_text(text: str, source: str = "<string>") -> dict[str, str]:
    """
    Parse KEY=value lines.

    Blank lines and # comments are skipped; an optional leading `export ` is
    tolerated.

    Raises:
        ValueError: on a line without '=', a bad key, or a forbidden pattern
    """
    result: dict[str, str] = {}

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith('#'):
            continue
        if line.startswith('export '):
            line = line[len('export '):].lstrip()

        if '=' not in line:
            raise ValueError(f"{source}:{lineno}: Invalid syntax (no '=')")

        key, _, value = line.partition('=')
        key = key.strip()
        if not KEY_PATTERN.match(key):
            raise ValueError(f"{source}:{lineno}: Invalid key '{key}'")

        value = _unquote(value.strip())
        for pattern in FORBIDDEN_PATTERNS:
            if re.search(pattern, value):
                raise ValueError(f"{source}:{lineno}: Forbidden pattern in value for {key}")

        result[key] = value

    return result


def load_env(filepath: Path | str, required: bool = True) -> dict[str, str]:
    """
    Parse an env file, return dict.

    Raises:
        FileNotFoundError: if the file doesn't exist and required is True
        ValueError: if syntax invalid or forbidden pattern found
    """
    path = Path(filepath)
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Env file not found: {path}")
        return {}
    return parse_env_text(path.read_text(encoding="utf-8"), source=str(path))
