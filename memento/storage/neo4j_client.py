"""
Neo4j HTTP client for the Query API v2.

Talks to Neo4j over HTTPS (one POST per statement) rather than Bolt, so
it works wherever outbound TCP is restricted to HTTP.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from memento.errors import UpstreamQueryFailure

logger = logging.getLogger(__name__)


class Neo4jHttpClient:
    """Async client for Neo4j's Query API."""

    def __init__(
        self,
        uri: str,
        user: str,
        password: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            uri: Full Query API endpoint, e.g. https://host/db/neo4j/query/v2
            user: Basic auth user
            password: Basic auth password
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.uri = uri
        self._client = httpx.AsyncClient(
            auth=(user, password),
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def query_raw(
        self,
        statement: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Execute a Cypher statement and return the raw response body.

        Raises:
            UpstreamQueryFailure: on transport errors, non-success status
                or a body that is not JSON
        """
        try:
            response = await self._client.post(
                self.uri,
                json={"statement": statement, "parameters": parameters or {}},
            )
        except httpx.HTTPError as e:
            raise UpstreamQueryFailure(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise UpstreamQueryFailure(response.text, status=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamQueryFailure(
                f"unparsable response body: {e}", status=response.status_code
            ) from e

    async def query(
        self,
        statement: str,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a Cypher statement and map each row to a field-name dict.

        Row order is preserved.
        """
        result = await self.query_raw(statement, parameters)

        errors = result.get("errors") if isinstance(result, dict) else None
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            raise UpstreamQueryFailure(str(first))

        try:
            fields = result["data"]["fields"]
            values = result["data"]["values"]
        except (KeyError, TypeError) as e:
            raise UpstreamQueryFailure(f"malformed query result: missing {e}") from e

        return [dict(zip(fields, row)) for row in values]

    async def close(self):
        await self._client.aclose()
