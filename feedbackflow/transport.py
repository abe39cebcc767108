"""HTTP transports used by PagedFetcher.

A transport turns ``(query, variables)`` into one HTTP request and returns the
raw ``requests.Response``. Transports are configured once at construction
(endpoint, credentials, session headers) and are safe to share between
concurrently fetched collections because nothing is mutated afterwards.

    GraphQLTransport: POSTs ``{"query": ..., "variables": ...}`` to a GraphQL endpoint;
        the pagination cursor travels in the ``after`` variable
    RestTransport: GETs ``query`` (a URL) with ``variables`` as query parameters;
        the pagination cursor travels in ``pageToken`` (YouTube Data API style)
"""

from typing import Any, Dict, Optional

import requests

USER_AGENT = "feedbackflow/1.0.0"


class GraphQLTransport:
    """Bearer-token GraphQL transport.

    Attributes:
        endpoint: GraphQL endpoint URL
        session: requests session carrying auth and user-agent headers
        timeout: Per-request timeout in seconds
        cursor_variable: Variable name that carries the page cursor
    """

    cursor_variable = "after"

    def __init__(
        self,
        endpoint: str,
        token: str,
        session: Optional[requests.Session] = None,
        timeout: float = 60.0,
    ):
        if not token:
            raise ValueError("A bearer token is required for the GraphQL transport (GITHUB_TOKEN)")

        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "User-Agent": USER_AGENT,
        })

    def send(self, query: str, variables: Dict[str, Any]) -> requests.Response:
        return self.session.post(
            self.endpoint,
            json={"query": query, "variables": variables},
            timeout=self.timeout,
        )


class RestTransport:
    """Key-authenticated REST transport for page-token APIs."""

    cursor_variable = "pageToken"

    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        timeout: float = 60.0,
        key_param: str = "key",
    ):
        if not api_key:
            raise ValueError("An API key is required for the REST transport")

        self.api_key = api_key
        self.key_param = key_param
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def send(self, query: str, variables: Dict[str, Any]) -> requests.Response:
        # Unset cursor/filters are omitted rather than sent as empty strings
        params = {key: value for key, value in variables.items() if value is not None}
        params[self.key_param] = self.api_key
        return self.session.get(query, params=params, timeout=self.timeout)
