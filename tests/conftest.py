"""Pytest fixtures and fakes shared by the test suite."""

import base64
import json

import httpx
import pytest

from reviewbot.config import Settings
from reviewbot.models.integration import PrReviewIntegration, UserIntegration
from reviewbot.models.session import ChangedFile

GREPTILE_URL = "https://greptile.test/v2"
GITHUB_URL = "https://api.github.test"
GITLAB_URL = "https://gitlab.test/api/v4"


def make_settings(**overrides) -> Settings:
    values = {
        "GREPTILE_API_URL": GREPTILE_URL,
        "GREPTILE_API_KEY": "service-key",
        "MONGODB_URI": "mongodb://localhost:27017",
        "INTEGRATIONS_COLLECTION": "integrations",
        "GITHUB_APP_ID": "1234",
        "GITHUB_PRIVATE_KEY": "not-a-real-key",
        "GITHUB_API_BASE_URL": GITHUB_URL,
        "GITLAB_API_BASE_URL": GITLAB_URL,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


def make_file(path="src/app.py", status="modified", patch="", lines=(), previous_path=None) -> ChangedFile:
    return ChangedFile(path=path, status=status, patch=patch, content_lines=tuple(lines), previous_path=previous_path)


def b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


def greptile_message(summary: str, comments: list[dict]) -> dict:
    """A /query response body whose message wraps a review result."""
    return {"message": json.dumps({"summary": summary, "comments": comments}), "sources": []}


class FakeAPI:
    """
    Routes MockTransport requests to canned handlers.

    Handlers are keyed by (method, host, path); a key whose path ends with
    ``/`` matches as a prefix. Handlers receive the request and return an
    httpx.Response, or are a ``(status, json)`` tuple.
    """

    def __init__(self):
        self.routes = {}
        self.requests: list[httpx.Request] = []

    def add(self, method, url, handler):
        parsed = httpx.URL(url)
        self.routes[(method, parsed.host, parsed.path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.host, request.url.path))
        if handler is None:
            for (method, host, path), candidate in self.routes.items():
                if (
                    path.endswith("/")
                    and method == request.method
                    and host == request.url.host
                    and request.url.path.startswith(path)
                ):
                    handler = candidate
                    break
        if handler is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if callable(handler):
            return handler(request)
        status, body = handler
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls(self, method, url_prefix):
        return [r for r in self.requests if r.method == method and str(r.url).startswith(url_prefix)]


@pytest.fixture
def fake_api() -> FakeAPI:
    return FakeAPI()


class FakeStore:
    """In-memory stand-in for SettingsStore."""

    def __init__(self, integration=None, user=None, fail_delete=False):
        self.integration = integration
        self.user = user
        self.fail_delete = fail_delete
        self.deleted = []

    async def ping(self):
        return True

    async def get_integration(self, repository, branch, integration):
        self.lookup = (repository, branch, integration)
        return self.integration

    async def get_user_integration(self, user_id):
        return self.user

    async def delete_integration(self, repository, branch, integration):
        self.deleted.append((repository, branch, integration))
        if self.fail_delete:
            raise RuntimeError("store unavailable")


def enabled_store(labels=None, repositories=("acme/widgets",), api_key="user-key", comment="") -> FakeStore:
    return FakeStore(
        integration=PrReviewIntegration(userId="u-1", labels=list(labels or []), instructions="", comment=comment),
        user=UserIntegration(user_id="u-1", greptileApiKey=api_key, repositories=list(repositories)),
    )


class StubAuth:
    def __init__(self, token="inst-token"):
        self.token = token
        self.requested = []

    async def installation_token(self, installation_id):
        self.requested.append(installation_id)
        return self.token


def pull_request_payload(action="opened", labels=(), number=7) -> dict:
    return {
        "action": action,
        "pull_request": {
            "number": number,
            "title": "Add widget cache",
            "body": "Caches widgets.",
            "url": f"{GITHUB_URL}/repos/acme/widgets/pulls/{number}",
            "labels": [{"name": name} for name in labels],
            "head": {"ref": "feature", "sha": "head123", "repo": {"full_name": "acme/widgets", "default_branch": "main"}},
            "base": {"ref": "main", "sha": "base456", "repo": {"full_name": "acme/widgets", "default_branch": "main"}},
        },
        "repository": {"full_name": "acme/widgets", "default_branch": "main"},
        "installation": {"id": 99},
    }


def merge_request_payload(action="open") -> dict:
    return {
        "object_kind": "merge_request",
        "project": {"id": 7, "web_url": "https://gitlab.test/group/widgets", "path_with_namespace": "group/widgets"},
        "object_attributes": {
            "iid": 3,
            "action": action,
            "title": "Add widget cache",
            "description": "Caches widgets.",
            "source_branch": "feature",
            "target_branch": "develop",
            "last_commit": {"id": "head123"},
        },
    }
