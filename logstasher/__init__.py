"""logstasher — tail documents from Elasticsearch indices."""

__version__ = "0.3.0"
