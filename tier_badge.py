import os
import json
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Tuple

import requests

# =========================
# Config / Tunables
# =========================
GRAPHQL_URL = "https://api.github.com/graphql"
USER_AGENT = "tier-badge"

WINDOW_DAYS = 365
REPOS_PER_PAGE = 100            # max 100
REQUEST_TIMEOUT = 40

OUT_BADGE = "tier.json"
OUT_METRICS = "tier-metrics.json"

BADGE_SCHEMA_VERSION = 1
BADGE_LABEL = "Developer Tier"

WEIGHTS: Dict[str, int] = {
    "commits": 1,
    "stars": 5,
    "prs": 3,
    "issues": 2,
    "followers": 2,
}


@dataclass(frozen=True)
class Tier:
    name: str
    min: int
    color: str


# Highest threshold first; the last entry is the floor.
TIERS: Tuple[Tier, ...] = (
    Tier("S Tier", 500, "E53935"),
    Tier("A Tier", 250, "FB8C00"),
    Tier("B Tier", 120, "2E7D32"),
    Tier("C Tier", 60, "1976D2"),
    Tier("D Tier", 0, "546E7A"),
)

STATS_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!, $cursor: String) {
  user(login: $login) {
    followers { totalCount }
    contributionsCollection(from: $from, to: $to) {
      totalCommitContributions
      totalPullRequestContributions
      totalIssueContributions
    }
    repositories(
      first: %d,
      after: $cursor,
      ownerAffiliations: OWNER,
      isFork: false,
      privacy: PUBLIC
    ) {
      nodes { stargazerCount }
      pageInfo { hasNextPage endCursor }
    }
  }
}
""" % REPOS_PER_PAGE


def load_credentials() -> Tuple[str, str]:
    username = os.environ.get("USERNAME")
    token = os.environ.get("GITHUB_TOKEN")
    if not username or not token:
        raise SystemExit("Missing USERNAME or GITHUB_TOKEN.")
    return username, token


# =========================
# Time window
# =========================
@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime


def iso_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def contribution_window(now: Optional[datetime] = None, days: int = WINDOW_DAYS) -> Window:
    end = now or datetime.now(timezone.utc)
    return Window(start=end - timedelta(days=days), end=end)


# =========================
# HTTP / GraphQL
# =========================
class TransportError(RuntimeError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"GitHub API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class QueryError(RuntimeError):
    def __init__(self, errors: List[Any]) -> None:
        super().__init__(f"GraphQL errors: {json.dumps(errors)}")
        self.errors = errors


def gh_headers(token: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"bearer {token}",
        "User-Agent": USER_AGENT,
    }


def graphql(query: str, variables: Dict[str, Any], token: str) -> Dict[str, Any]:
    resp = requests.post(
        GRAPHQL_URL,
        headers=gh_headers(token),
        json={"query": query, "variables": variables},
        timeout=REQUEST_TIMEOUT,
    )
    if not resp.ok:
        raise TransportError(resp.status_code, resp.text)

    payload = resp.json()
    # GraphQL reports query failures with HTTP 200
    if payload.get("errors") is not None:
        raise QueryError(payload["errors"])
    if not payload.get("data"):
        raise QueryError([{"message": "response carried no data"}])
    return payload["data"]


# =========================
# Stats
# =========================
@dataclass
class Stats:
    commits: int = 0
    stars: int = 0
    prs: int = 0
    issues: int = 0
    followers: int = 0


def fetch_stats(login: str, window: Window, token: str) -> Stats:
    """
    Walk the owner's public, non-fork repositories page by page.

    Followers and contribution totals are the same on every page, so they are
    read from the first page only; stars are summed across all pages.
    """
    stats: Optional[Stats] = None
    stars = 0
    cursor: Optional[str] = None
    pages = 0

    while True:
        data = graphql(
            STATS_QUERY,
            {
                "login": login,
                "from": iso_instant(window.start),
                "to": iso_instant(window.end),
                "cursor": cursor,
            },
            token,
        )
        pages += 1
        user = data.get("user")
        if user is None:
            raise QueryError([{"message": f"no user named {login}"}])

        if stats is None:
            contribs = user["contributionsCollection"]
            stats = Stats(
                commits=contribs["totalCommitContributions"],
                prs=contribs["totalPullRequestContributions"],
                issues=contribs["totalIssueContributions"],
                followers=user["followers"]["totalCount"],
            )

        repos = user["repositories"]
        for node in repos["nodes"]:
            stars += node["stargazerCount"]

        page_info = repos["pageInfo"]
        if not page_info["hasNextPage"] or not page_info["endCursor"]:
            break
        cursor = page_info["endCursor"]

    print(f"Fetched {pages} page(s) of repositories for {login}.")
    stats.stars = stars
    return stats


# =========================
# Scoring
# =========================
def compute_score(stats: Stats, weights: Dict[str, int] = WEIGHTS) -> int:
    values = asdict(stats)
    return sum(value * weights[metric] for metric, value in values.items())


def pick_tier(score: float, tiers: Tuple[Tier, ...] = TIERS) -> Tier:
    for tier in tiers:
        if score >= tier.min:
            return tier
    # table without a zero floor
    return tiers[-1]


# =========================
# Artifacts
# =========================
def build_badge(tier: Tier) -> Dict[str, Any]:
    return {
        "schemaVersion": BADGE_SCHEMA_VERSION,
        "label": BADGE_LABEL,
        "message": tier.name,
        "color": tier.color,
    }


def build_metrics(updated: datetime, score: float, stats: Stats) -> Dict[str, Any]:
    return {
        "updated": iso_instant(updated),
        "windowDays": WINDOW_DAYS,
        "score": score,
        "stats": asdict(stats),
        "weights": dict(WEIGHTS),
        "tiers": [asdict(t) for t in TIERS],
    }


def write_artifacts(badge: Dict[str, Any], metrics: Dict[str, Any]) -> None:
    with open(OUT_BADGE, "w", encoding="utf-8") as f_badge:
        f_badge.write(json.dumps(badge, separators=(",", ":")))
    with open(OUT_METRICS, "w", encoding="utf-8") as f_metrics:
        f_metrics.write(json.dumps(metrics, indent=2))


def main() -> None:
    username, token = load_credentials()
    window = contribution_window()

    stats = fetch_stats(username, window, token)
    score = compute_score(stats)
    tier = pick_tier(score)

    write_artifacts(build_badge(tier), build_metrics(window.end, score, stats))

    print(
        "Done.\n"
        f"- {username}: score {score} -> {tier.name}\n"
        f"- Wrote {OUT_BADGE}\n"
        f"- Wrote {OUT_METRICS}"
    )


def run() -> None:
    try:
        main()
    except (RuntimeError, requests.RequestException, OSError) as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    run()
