"""Pytest fixtures shared by the tier badge tests."""

import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import tier_badge  # noqa: E402


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload


def user_page(stars, has_next=False, end_cursor=None, commits=0, prs=0, issues=0, followers=0):
    """Build one GraphQL ``data`` payload as returned for the stats query."""
    return {
        "data": {
            "user": {
                "followers": {"totalCount": followers},
                "contributionsCollection": {
                    "totalCommitContributions": commits,
                    "totalPullRequestContributions": prs,
                    "totalIssueContributions": issues,
                },
                "repositories": {
                    "nodes": [{"stargazerCount": s} for s in stars],
                    "pageInfo": {"hasNextPage": has_next, "endCursor": end_cursor},
                },
            }
        }
    }


@pytest.fixture
def github(monkeypatch):
    """Replace ``requests.post`` with a queue of canned responses.

    Append ``FakeResponse`` objects to ``github.responses``; every request made
    is recorded in ``github.calls`` as a dict of the keyword arguments.
    """

    class _Github:
        def __init__(self):
            self.responses = []
            self.calls = []

        def post(self, url, **kwargs):
            self.calls.append({"url": url, **kwargs})
            return self.responses.pop(0)

    fake = _Github()
    monkeypatch.setattr(tier_badge.requests, "post", fake.post)
    return fake


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("USERNAME", "octocat")
    monkeypatch.setenv("GITHUB_TOKEN", "test-token-123")
