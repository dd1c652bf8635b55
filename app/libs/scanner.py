"""Denylist for automated scanner requests (dotfiles, VCS dirs, admin panels, backups ...)."""

import re

BLOCKED_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"^/?\.",  # .git, .env, .htaccess at the root
        r"\.(git|svn|hg)",  # version control directories
        r"\.(env|config|conf)$",
        r"\.(log|txt|bak)$",
        r"\.(sql|db|sqlite)$",
        r"\.(zip|tar|gz|rar)$",
        r"/(admin|wp-admin|wp-)",
        r"/(vendor|node_modules|\.)",  # also any dot-segment
        r"/(backup|backups)",
        r"/(test|tests)",
        r"/\.well-known",
        r"\.(php|jsp|asp|py)$",
        r"/robots\.txt$",
        r"/sitemap",
        r"favicon\.ico$",
    )
)

ROOT_PATH = "/"


def match_blocked_pattern(path: str) -> str | None:
    """Return the first denylist pattern matching ``path`` (case-insensitive)."""
    lowered = path.lower()
    for pattern in BLOCKED_PATTERNS:
        if pattern.search(lowered):
            return pattern.pattern
    return None


def is_blocked_path(path: str, exempt: frozenset[str] = frozenset()) -> bool:
    if path == ROOT_PATH:
        return True
    if path in exempt:
        return False
    return match_blocked_pattern(path) is not None
