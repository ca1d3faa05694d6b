"""End-to-end review sessions against faked GitHub, GitLab and review service APIs."""

import asyncio
import json
from urllib.parse import parse_qs

import httpx

from conftest import (
    GITHUB_URL,
    GITLAB_URL,
    GREPTILE_URL,
    StubAuth,
    b64,
    enabled_store,
    greptile_message,
    make_settings,
    merge_request_payload,
    pull_request_payload,
)
from reviewbot.agents import ReviewClient
from reviewbot.integrations.greptile import GreptileClient
from reviewbot.orchestrator import EventRouter, GitHubReviewPipeline, GitLabReviewPipeline
from reviewbot.orchestrator.pipeline import OVERALL_ERROR_TEXT

QUERY = f"{GREPTILE_URL}/query"
REPO = f"{GITHUB_URL}/repos/acme/widgets"

A_PATCH = "@@ -1,2 +1,5 @@\n import os\n+import sys\n+\n+x = None\n+print(x.y)\n"
B_PATCH = "@@ -1 +1 @@\n-helo = 1\n+hello = 1\n"

A_REVIEW = greptile_message(
    "Adds sys import and a None dereference",
    [
        {"start": 4, "end": 5, "comment": "x is None here, so x.y raises AttributeError"},
        {"start": 2, "end": 2, "comment": "Ensure sys is needed"},
    ],
)
B_REVIEW = greptile_message("Renames helo", [{"start": 1, "end": 1, "comment": "Callers still use helo"}])


def greptile_handler(per_file, overall="- Adds a cache"):
    """Answer per-file prompts from ``per_file`` (a body or a status code) and everything else with ``overall``."""

    def handler(request):
        content = json.loads(request.content)["messages"][-1]["content"]
        for path, reply in per_file.items():
            if f"File name: {path}\n" in content:
                if isinstance(reply, int):
                    return httpx.Response(reply, json={"error": "unavailable"})
                return httpx.Response(200, json=reply)
        return httpx.Response(200, json={"message": overall, "sources": []})

    return handler


def github_contents(request):
    path = request.url.path.split("/contents/", 1)[1]
    text = {"src/a.py": "import os\nimport sys\n\nx = None\nprint(x.y)\n", "src/b.py": "hello = 1\n"}[path]
    return httpx.Response(200, json={"content": b64(text), "encoding": "base64"})


def github_api(fake_api, per_file, review_status=200):
    fake_api.add(
        "GET",
        f"{REPO}/pulls/7/files",
        (200, [
            {"filename": "src/a.py", "status": "modified", "patch": A_PATCH},
            {"filename": "src/b.py", "status": "modified", "patch": B_PATCH},
        ]),
    )
    fake_api.add("GET", f"{REPO}/contents/", github_contents)
    fake_api.add("POST", f"{REPO}/pulls/7/reviews", (review_status, {"id": 1}))
    fake_api.add("POST", f"{REPO}/issues/7/comments", (201, {"id": 2}))
    fake_api.add("POST", QUERY, greptile_handler(per_file))


def build_router(fake_api, settings=None, store=None):
    settings = settings or make_settings()
    reviewer = ReviewClient(GreptileClient(settings, transport=fake_api.transport))
    return EventRouter(
        settings=settings,
        store=store or enabled_store(),
        github_pipeline=GitHubReviewPipeline(settings, reviewer),
        gitlab_pipeline=GitLabReviewPipeline(settings, reviewer),
        github_auth=StubAuth(),
        transport=fake_api.transport,
    )


class TestGitHubSession:
    def test_opened_pull_request_posts_batched_review(self, fake_api):
        github_api(fake_api, {"src/a.py": A_REVIEW, "src/b.py": B_REVIEW})

        asyncio.run(build_router(fake_api).dispatch(pull_request_payload()))

        queries = fake_api.calls("POST", QUERY)
        assert len(queries) == 3  # two files plus the overall comment

        [review] = fake_api.calls("POST", f"{REPO}/pulls/7/reviews")
        payload = json.loads(review.content)
        assert payload["body"] == "- Adds a cache"
        assert payload["comments"] == [
            {
                "path": "src/a.py",
                "side": "RIGHT",
                "line": 5,
                "start_line": 4,
                "start_side": "RIGHT",
                "body": "x is None here, so x.y raises AttributeError",
            },
            {"path": "src/b.py", "side": "RIGHT", "line": 1, "body": "Callers still use helo"},
        ]
        assert fake_api.calls("POST", f"{REPO}/issues/7/comments") == []

        file_prompt = json.loads(queries[0].content)["messages"][1]["content"]
        assert "4: x = None" in file_prompt
        assert request_token(fake_api) == "inst-token"

    def test_failed_file_is_skipped_but_siblings_are_reviewed(self, fake_api):
        github_api(fake_api, {"src/a.py": 500, "src/b.py": B_REVIEW})

        asyncio.run(build_router(fake_api).dispatch(pull_request_payload()))

        queries = fake_api.calls("POST", QUERY)
        assert len(queries) == 3 + 1 + 1  # three attempts for a.py, one for b.py, one overall
        overall_prompt = json.loads(queries[-1].content)["messages"][0]["content"]
        assert "File: src/b.py" in overall_prompt
        assert "File: src/a.py" not in overall_prompt

        [review] = fake_api.calls("POST", f"{REPO}/pulls/7/reviews")
        assert [c["path"] for c in json.loads(review.content)["comments"]] == ["src/b.py"]

    def test_rejected_review_falls_back_to_one_comment(self, fake_api):
        github_api(fake_api, {"src/a.py": A_REVIEW, "src/b.py": B_REVIEW}, review_status=422)

        asyncio.run(build_router(fake_api).dispatch(pull_request_payload()))

        [comment] = fake_api.calls("POST", f"{REPO}/issues/7/comments")
        body = json.loads(comment.content)["body"]
        assert body == (
            "- Adds a cache\n\n## Comments\n\n"
            "**src/a.py**\n- Lines 4 - 5: x is None here, so x.y raises AttributeError\n\n"
            "**src/b.py**\n- Line 1: Callers still use helo"
        )

    def test_overall_failure_uses_error_text(self, fake_api):
        github_api(fake_api, {"src/a.py": A_REVIEW, "src/b.py": B_REVIEW})

        def failing_overall(request):
            content = json.loads(request.content)["messages"][-1]["content"]
            if "File name:" in content:
                return greptile_handler({"src/a.py": A_REVIEW, "src/b.py": B_REVIEW})(request)
            return httpx.Response(503, json={})

        fake_api.add("POST", QUERY, failing_overall)

        asyncio.run(build_router(fake_api).dispatch(pull_request_payload()))

        [review] = fake_api.calls("POST", f"{REPO}/pulls/7/reviews")
        assert json.loads(review.content)["body"] == OVERALL_ERROR_TEXT


def request_token(fake_api):
    [files_call] = fake_api.calls("GET", f"{REPO}/pulls/7/files")
    return files_call.headers["Authorization"].removeprefix("Bearer ")


GL_PROJECT = f"{GITLAB_URL}/projects/7"


def gitlab_api(fake_api, per_file, branch="develop"):
    fake_api.add("GET", f"{GL_PROJECT}/repository/branches/{branch}", (200, {"name": branch, "commit": {"id": "base456"}}))
    fake_api.add(
        "GET",
        f"{GL_PROJECT}/merge_requests/3/diffs",
        (200, [
            {"old_path": "src/a.py", "new_path": "src/a.py", "diff": A_PATCH},
            {"old_path": "src/gone.py", "new_path": "src/gone.py", "diff": "@@ -1 +0,0 @@\n-x = 1\n", "deleted_file": True},
        ]),
    )
    fake_api.add("GET", f"{GL_PROJECT}/repository/files/", (200, {"content": b64("import os\nimport sys\n")}))
    fake_api.add("POST", f"{GL_PROJECT}/merge_requests/3/notes", (201, {}))
    fake_api.add("POST", f"{GL_PROJECT}/merge_requests/3/discussions", (201, {}))
    fake_api.add("POST", QUERY, greptile_handler(per_file))


class TestGitLabSession:
    def test_merge_request_fans_out_discussions(self, fake_api):
        gitlab_api(
            fake_api,
            {
                "src/a.py": greptile_message(
                    "Adds code",
                    [
                        {"start": 4, "end": 4, "comment": "x is None", "modify_type": "add"},
                        {"start": 1, "end": 1, "comment": "import os was removed", "modify_type": "delete"},
                    ],
                ),
                "src/gone.py": greptile_message("Deletes module", [{"comment": "Still imported by app.py"}]),
            },
        )

        asyncio.run(build_router(fake_api).dispatch(merge_request_payload(), "gl-token"))

        [note] = fake_api.calls("POST", f"{GL_PROJECT}/merge_requests/3/notes")
        assert json.loads(note.content)["body"] == "- Adds a cache"

        forms = [parse_qs(r.content.decode()) for r in fake_api.calls("POST", f"{GL_PROJECT}/merge_requests/3/discussions")]
        assert [f["body"] for f in forms] == [["x is None"], ["import os was removed"], ["Still imported by app.py"]]
        assert forms[0]["position[new_line]"] == ["4"]
        assert forms[1]["position[old_line]"] == ["1"]
        assert forms[2]["position[old_line]"] == ["1"]
        for form in forms:
            assert form["position[base_sha]"] == ["base456"]
            assert form["position[start_sha]"] == ["base456"]
            assert form["position[head_sha]"] == ["head123"]

        query = fake_api.calls("POST", QUERY)[0]
        assert query.headers["X-GitLab-Token"] == "gl-token"
        assert query.headers["Authorization"] == "Bearer service-key"
        assert json.loads(query.content)["repositories"] == [
            {"remote": "gitlab", "repository": "group/widgets", "branch": "develop"}
        ]

    def test_configured_base_branch_overrides_target(self, fake_api):
        gitlab_api(fake_api, {"src/a.py": greptile_message("", []), "src/gone.py": greptile_message("", [])}, branch="main")

        asyncio.run(build_router(fake_api, settings=make_settings(GITLAB_BASE_BRANCH="main")).dispatch(merge_request_payload(), "gl-token"))

        assert len(fake_api.calls("GET", f"{GL_PROJECT}/repository/branches/main")) == 1
        assert fake_api.calls("GET", f"{GL_PROJECT}/repository/branches/develop") == []
