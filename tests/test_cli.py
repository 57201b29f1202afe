"""
Tests for the Memento CLI.
"""

import httpx
import orjson
import pytest
from typer.testing import CliRunner

from memento.cli import main as cli

runner = CliRunner()


class SimpleApi:
    def __init__(self, requests, responses):
        self.requests = requests
        self.responses = responses


@pytest.fixture
def api(monkeypatch):
    """Route CLI HTTP calls to an in-process handler."""
    requests = []
    responses = {}

    def handler(request):
        body = orjson.loads(request.content) if request.content else None
        requests.append((request.method, request.url.path, body))
        return responses[request.url.path](body)

    def get_client():
        return httpx.Client(base_url="http://memento.test", transport=httpx.MockTransport(handler))

    monkeypatch.setattr(cli, "get_client", get_client)
    return SimpleApi(requests, responses)


def search_payload(body):
    return httpx.Response(200, json={
        "entities": [{
            "name": "TeamBadass",
            "entityType": "team",
            "observations": ["ships"],
            "updated": "2024-01-02",
        }],
        "relations": [],
        "total": 1,
        "timeTaken": 12,
    })


class TestSearchCommand:

    def test_hybrid_search(self, api):
        api.responses["/search/semantic"] = search_payload
        result = runner.invoke(cli.app, ["search", "TeamBadass", "--limit", "5"])

        assert result.exit_code == 0
        assert "TeamBadass" in result.output
        method, path, body = api.requests[0]
        assert (method, path) == ("POST", "/search/semantic")
        assert body["limit"] == 5
        assert body["hybridSearch"] is True

    def test_vector_mode(self, api):
        api.responses["/search/semantic"] = search_payload
        result = runner.invoke(cli.app, ["search", "TeamBadass", "--mode", "vector"])

        assert result.exit_code == 0
        assert api.requests[0][2]["hybridSearch"] is False

    def test_unknown_mode(self, api):
        result = runner.invoke(cli.app, ["search", "x", "--mode", "graph"])
        assert result.exit_code == 1
        assert api.requests == []

    def test_server_error(self, api):
        api.responses["/search/semantic"] = lambda body: httpx.Response(502, json={"detail": "Graph query failed"})
        result = runner.invoke(cli.app, ["search", "x"])

        assert result.exit_code == 1
        assert "Graph query failed" in result.output


class TestIngestCommand:

    def test_ingest(self, api, tmp_path):
        api.responses["/entities"] = lambda body: httpx.Response(200, json=[
            {"name": e["name"], "entityType": e["entityType"], "wasCreated": True, "error": None}
            for e in body["entities"]
        ])
        api.responses["/relations"] = lambda body: httpx.Response(200, json=[
            {**r, "wasCreated": True, "error": None} for r in body["relations"]
        ])

        path = tmp_path / "graph.json"
        path.write_bytes(orjson.dumps({
            "entities": [
                {"name": f"e{i}", "entityType": "thing", "observations": []}
                for i in range(3)
            ],
            "relations": [{"from": "e0", "to": "e1", "relationType": "knows"}],
        }))

        result = runner.invoke(cli.app, ["ingest", str(path), "--batch-size", "2"])

        assert result.exit_code == 0
        assert [p for _, p, _ in api.requests] == ["/entities", "/entities", "/relations"]
        assert "3 created" in result.output
        assert "1 of 1" in result.output

    def test_invalid_json(self, api, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{nope")
        result = runner.invoke(cli.app, ["ingest", str(path)])
        assert result.exit_code == 1
