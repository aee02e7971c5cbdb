"""
GitHub API client – repository metadata, search, README, issues and PRs.
All functions are sync; the invoker runs them in worker threads.
"""
import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import settings

logger = logging.getLogger(__name__)

# ── Helpers ────────────────────────────────────────────────────────────────


def _headers() -> Dict[str, str]:
    h = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "GitHub-MCP-Server",
    }
    if settings.github_token:
        h["Authorization"] = f"Bearer {settings.github_token}"
    return h


def _url(path: str) -> str:
    return f"{settings.github_api_base.rstrip('/')}{path}"


def _repo_path(owner: str, repo: str, path: str = "") -> str:
    return f"/repos/{owner}/{repo}{path}"


def _user(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    raw = raw or {}
    return {
        "login": raw.get("login", ""),
        "avatar_url": raw.get("avatar_url", ""),
        "url": raw.get("html_url", ""),
    }


# ── Core request helpers ──────────────────────────────────────────────────


def _get(path: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """Perform a GET request and return parsed JSON."""
    with httpx.Client(timeout=settings.github_timeout) as client:
        resp = client.get(_url(path), headers=_headers(), params=params)
        resp.raise_for_status()
        return resp.json()


def _post(path: str, payload: Dict[str, Any]) -> Any:
    """Perform a POST request and return parsed JSON."""
    with httpx.Client(timeout=settings.github_timeout) as client:
        resp = client.post(_url(path), headers=_headers(), json=payload)
        resp.raise_for_status()
        return resp.json()


def describe_http_error(exc: Exception) -> str:
    """Human-readable summary of an httpx failure, including GitHub's message."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        try:
            detail = exc.response.json().get("message", "")
        except ValueError:
            detail = exc.response.text[:200]
        text = f"GitHub API returned {status}"
        return f"{text}: {detail}" if detail else text
    if isinstance(exc, httpx.TimeoutException):
        return f"GitHub API request timed out: {exc}"
    if isinstance(exc, httpx.RequestError):
        return f"GitHub API request failed: {exc}"
    return str(exc)


# ── Public functions ──────────────────────────────────────────────────────


def search_repositories(
    query: str,
    sort: str = "stars",
    order: str = "desc",
    per_page: int = 10,
) -> Dict[str, Any]:
    """
    Search public repositories.

    Args:
        query: GitHub search query.
        sort: 'stars', 'forks' or 'updated'.
        order: 'asc' or 'desc'.
        per_page: Max results to return.

    Returns:
        Dict with ``total`` and a simplified ``items`` list.
    """
    raw = _get(
        "/search/repositories",
        params={"q": query, "sort": sort, "order": order, "per_page": per_page},
    )
    items = [
        {
            "id": r.get("id"),
            "name": r.get("name", ""),
            "full_name": r.get("full_name", ""),
            "description": r.get("description"),
            "url": r.get("html_url", ""),
            "stars": r.get("stargazers_count", 0),
            "forks": r.get("forks_count", 0),
            "language": r.get("language"),
            "owner": _user(r.get("owner")),
            "created_at": r.get("created_at", ""),
            "updated_at": r.get("updated_at", ""),
        }
        for r in raw.get("items", [])
    ]
    logger.info(f"Search '{query}' returned {len(items)} of {raw.get('total_count', 0)} repositories")
    return {"total": raw.get("total_count", 0), "items": items}


def get_repository(owner: str, repo: str) -> Dict[str, Any]:
    """Fetch repository metadata."""
    raw = _get(_repo_path(owner, repo))
    return {
        "id": raw.get("id"),
        "name": raw.get("name", ""),
        "full_name": raw.get("full_name", ""),
        "description": raw.get("description"),
        "url": raw.get("html_url", ""),
        "stars": raw.get("stargazers_count", 0),
        "forks": raw.get("forks_count", 0),
        "watchers": raw.get("watchers_count", 0),
        "open_issues": raw.get("open_issues_count", 0),
        "language": raw.get("language"),
        "license": (raw.get("license") or {}).get("name"),
        "default_branch": raw.get("default_branch", ""),
        "topics": raw.get("topics", []),
        "owner": _user(raw.get("owner")),
        "created_at": raw.get("created_at", ""),
        "updated_at": raw.get("updated_at", ""),
        "pushed_at": raw.get("pushed_at", ""),
    }


def get_readme(owner: str, repo: str) -> Dict[str, Any]:
    """
    Fetch the repository README.
    GitHub returns the file base64-encoded; it is decoded to text here.
    """
    raw = _get(_repo_path(owner, repo, "/readme"))
    content = raw.get("content", "") or ""
    if raw.get("encoding") == "base64":
        content = base64.b64decode(content).decode("utf-8", errors="replace")
    return {
        "content": content,
        "name": raw.get("name", ""),
        "path": raw.get("path", ""),
        "html_url": raw.get("html_url", ""),
    }


def list_issues(
    owner: str,
    repo: str,
    state: str = "open",
    per_page: int = 10,
) -> Dict[str, Any]:
    """List issues; the issues endpoint also returns PRs, which are dropped."""
    raw = _get(_repo_path(owner, repo, "/issues"), params={"state": state, "per_page": per_page})
    issues = [
        {
            "number": i.get("number"),
            "title": i.get("title", ""),
            "state": i.get("state", ""),
            "url": i.get("html_url", ""),
            "user": _user(i.get("user")),
            "created_at": i.get("created_at", ""),
            "updated_at": i.get("updated_at", ""),
            "comments": i.get("comments", 0),
            "body": i.get("body"),
            "labels": [
                {"name": label.get("name", ""), "color": label.get("color", "")}
                for label in i.get("labels", [])
            ],
        }
        for i in raw
        if not i.get("pull_request")
    ]
    return {"count": len(issues), "issues": issues}


def list_pull_requests(
    owner: str,
    repo: str,
    state: str = "open",
    per_page: int = 10,
) -> Dict[str, Any]:
    """List pull requests."""
    raw = _get(_repo_path(owner, repo, "/pulls"), params={"state": state, "per_page": per_page})
    pull_requests = [
        {
            "number": pr.get("number"),
            "title": pr.get("title", ""),
            "state": pr.get("state", ""),
            "url": pr.get("html_url", ""),
            "user": _user(pr.get("user")),
            "created_at": pr.get("created_at", ""),
            "updated_at": pr.get("updated_at", ""),
            "merged_at": pr.get("merged_at"),
            "draft": pr.get("draft", False),
        }
        for pr in raw
    ]
    return {"count": len(pull_requests), "pull_requests": pull_requests}


def create_issue(
    owner: str,
    repo: str,
    title: str,
    body: str = "",
    labels: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Open a new issue. Requires a token with write access."""
    raw = _post(
        _repo_path(owner, repo, "/issues"),
        {"title": title, "body": body, "labels": labels or []},
    )
    logger.info(f"Created issue #{raw.get('number')} in {owner}/{repo}")
    return {
        "number": raw.get("number"),
        "title": raw.get("title", ""),
        "state": raw.get("state", ""),
        "url": raw.get("html_url", ""),
        "created_at": raw.get("created_at", ""),
    }
