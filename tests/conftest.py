"""
Shared pytest fixtures for FeedbackFlow tests.

These fixtures build fake HTTP responses and GitHub GraphQL payloads so the
services can be exercised without a network.
"""

import pytest
from unittest.mock import MagicMock


@pytest.fixture
def make_response():
    """Return a factory for requests.Response stand-ins."""
    def _make(status_code=200, payload=None, headers=None, json_error=None):
        response = MagicMock()
        response.status_code = status_code
        response.headers = headers or {}
        if json_error is not None:
            response.json.side_effect = json_error
        else:
            response.json.return_value = payload
        return response
    return _make


@pytest.fixture
def page_info():
    """Return a factory for GraphQL pageInfo objects."""
    def _page_info(has_next_page=False, end_cursor=None):
        return {"hasNextPage": has_next_page, "endCursor": end_cursor}
    return _page_info


@pytest.fixture
def graphql_comment():
    """Return a factory for GraphQL comment nodes."""
    def _comment(comment_id, body="", login="alice", replies=None, **extra):
        node = {
            "id": comment_id,
            "body": body,
            "url": f"https://github.com/dotnet/maui/issues/1#{comment_id}",
            "createdAt": "2024-05-01T10:00:00Z",
            "author": {"login": login} if login is not None else None,
        }
        if replies is not None:
            node["replies"] = {"edges": [{"node": reply} for reply in replies]}
        node.update(extra)
        return node
    return _comment


@pytest.fixture
def issue_node():
    """Return a factory for GraphQL issue/pull request nodes."""
    def _issue(number, title="Title", labels=(), comments=(), reactions=0, login="octocat"):
        return {
            "id": f"I_{number}",
            "number": number,
            "title": title,
            "body": f"Body of {number}",
            "url": f"https://github.com/dotnet/maui/issues/{number}",
            "createdAt": "2024-05-01T09:00:00Z",
            "updatedAt": "2024-05-02T09:00:00Z",
            "author": {"login": login} if login is not None else None,
            "reactions": {"totalCount": reactions},
            "labels": {"nodes": [{"name": name} for name in labels]},
            "comments": {"edges": [{"node": comment} for comment in comments]},
        }
    return _issue


@pytest.fixture
def sample_repository_payload():
    """Return a factory wrapping a repository connection in a GraphQL response."""
    def _payload(field_name, nodes, has_next_page=False, end_cursor=None):
        return {
            "data": {
                "repository": {
                    field_name: {
                        "edges": [{"node": node} for node in nodes],
                        "pageInfo": {"hasNextPage": has_next_page, "endCursor": end_cursor},
                    }
                }
            }
        }
    return _payload
