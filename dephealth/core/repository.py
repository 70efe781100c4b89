"""Source repository URL utilities."""

from __future__ import annotations

import re
from urllib.parse import urlparse

_GITHUB_HOSTS = ("github.com", "www.github.com")
_GITHUB_PATH_RE = re.compile(r"github\.com[/:]([^/]+)/([^/]+)")


def normalize_repository_url(url: str | None) -> str:
    """Normalize registry repository URLs to a plain https form.

    Handles:
      - git+https://github.com/owner/repo.git
      - ssh://git@github.com/owner/repo.git
      - git@github.com:owner/repo.git
    """
    if not url:
        return ""
    clean = url.strip()
    if clean.startswith("git+"):
        clean = clean[4:]
    if clean.endswith(".git"):
        clean = clean[:-4]
    if clean.startswith("ssh://git@"):
        clean = "https://" + clean[len("ssh://git@") :]
    m = re.match(r"^git@([^:]+):", clean)
    if m:
        clean = f"https://{m.group(1)}/" + clean[m.end() :]
    return clean


def extract_github_owner_repo(repo_url: str | None) -> tuple[str, str] | None:
    """Return ``(owner, repo)`` for a GitHub URL, or None for other hosts."""
    if not repo_url:
        return None
    parsed = urlparse(repo_url)
    if parsed.scheme and parsed.hostname:
        if parsed.hostname not in _GITHUB_HOSTS:
            return None
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) < 2:
            return None
        return parts[0], parts[1].removesuffix(".git")

    # Not a URL we can parse structurally; fall back to a loose match.
    m = _GITHUB_PATH_RE.search(repo_url)
    if m:
        return m.group(1), m.group(2).removesuffix(".git")
    return None
