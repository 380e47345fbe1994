import unittest

import requests

from auto_provisioner.runtimes import FALLBACK_NODE_VERSIONS, NodeVersionCatalog, parse_node_index

INDEX = [
    {"version": "v22.2.0", "lts": False},
    {"version": "v22.1.0", "lts": False},
    {"version": "v20.14.0", "lts": "Iron"},
    {"version": "v20.13.1", "lts": "Iron"},
    {"version": "v18.20.3", "lts": "Hydrogen"},
    {"version": "v16.20.2", "lts": "Gallium"},
]


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.response


class NodeVersionTests(unittest.TestCase):

    def test_parse_index_prefers_lts_lines(self) -> None:
        self.assertEqual(
            parse_node_index(INDEX),
            ["20.14.0", "18.20.3", "16.20.2", "22.2.0"],
        )

    def test_parse_index_when_newest_is_lts(self) -> None:
        self.assertEqual(parse_node_index(INDEX[2:], limit=2), ["20.14.0", "18.20.3"])

    def test_parse_index_respects_limit(self) -> None:
        self.assertEqual(parse_node_index(INDEX, limit=2), ["20.14.0", "22.2.0"])

    def test_catalog_fetches_index(self) -> None:
        session = FakeSession(FakeResponse(INDEX))
        versions = NodeVersionCatalog(session=session).versions()
        self.assertEqual(versions[0], "20.14.0")
        self.assertEqual(session.urls, ["https://nodejs.org/dist/index.json"])

    def test_network_error_falls_back(self) -> None:
        session = FakeSession(error=requests.exceptions.ConnectionError("offline"))
        self.assertEqual(NodeVersionCatalog(session=session).versions(), FALLBACK_NODE_VERSIONS)

    def test_http_error_falls_back(self) -> None:
        session = FakeSession(FakeResponse([], status_code=503))
        self.assertEqual(NodeVersionCatalog(session=session).versions(), FALLBACK_NODE_VERSIONS)

    def test_bad_json_falls_back(self) -> None:
        session = FakeSession(FakeResponse(ValueError("not json")))
        self.assertEqual(NodeVersionCatalog(session=session).versions(), FALLBACK_NODE_VERSIONS)

    def test_empty_index_falls_back(self) -> None:
        session = FakeSession(FakeResponse([]))
        self.assertEqual(NodeVersionCatalog(session=session).versions(), FALLBACK_NODE_VERSIONS)


if __name__ == "__main__":
    unittest.main()
