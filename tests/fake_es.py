"""Minimal Elasticsearch stand-in served by Flask for end-to-end tests.

Understands just enough query DSL for the tailer: match_all, query_string
(every term must appear in the message), bool must/filter and range with
gt/gte/lt on string timestamps.
"""

import threading

from flask import Flask, jsonify, request
from werkzeug.serving import make_server


def _matches(query: dict, doc: dict) -> bool:
    if "match_all" in query:
        return True
    if "query_string" in query:
        terms = [t for t in query["query_string"]["query"].split() if t != "AND"]
        message = str(doc.get("message", ""))
        return all(t in message for t in terms)
    if "range" in query:
        (field, bounds), = query["range"].items()
        value = doc.get(field)
        if value is None:
            return False
        if "gt" in bounds and not value > bounds["gt"]:
            return False
        if "gte" in bounds and not value >= bounds["gte"]:
            return False
        if "lt" in bounds and not value < bounds["lt"]:
            return False
        return True
    if "bool" in query:
        clauses = [query["bool"].get("must"), query["bool"].get("filter")]
        return all(_matches(c, doc) for c in clauses if c)
    raise ValueError(f"Unsupported query: {query}")


def create_app(documents: dict[str, list[dict]]) -> Flask:
    """*documents* maps index name to the documents stored in it."""
    app = Flask(__name__)
    app.config["SEARCHES"] = []

    @app.route("/_cat/indices")
    def cat_indices():
        return jsonify([{"index": name} for name in documents])

    @app.route("/<path:indices>/_search", methods=["POST"])
    def search(indices):
        body = request.get_json()
        app.config["SEARCHES"].append((indices.split(","), body))
        (field, sort), = body["sort"][0].items()
        docs = [
            (name, i, doc)
            for name in indices.split(",")
            for i, doc in enumerate(documents.get(name, []))
            if _matches(body["query"], doc)
        ]
        docs.sort(key=lambda d: d[2][field], reverse=sort["order"] == "desc")
        page = docs[body["from"]:body["from"] + body["size"]]
        return jsonify(hits={
            "total": {"value": len(docs), "relation": "eq"},
            "hits": [{"_index": name, "_id": f"{name}-{i}", "_source": doc}
                     for name, i, doc in page],
        })

    return app


class FakeElasticsearch:
    """Serves create_app() on an OS-assigned port in a background thread."""

    def __init__(self, documents: dict[str, list[dict]]):
        self.documents = documents
        self.app = create_app(documents)
        self._server = make_server("127.0.0.1", 0, self.app, threaded=True)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self._server.server_port}"

    @property
    def searches(self) -> list:
        return self.app.config["SEARCHES"]

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self._server.shutdown()
        self._thread.join(timeout=5)
