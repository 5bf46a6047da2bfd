"""Elasticsearch query DSL builders. Pure functions returning plain dicts."""

import logging

from logstasher.config import QueryDefinition

logger = logging.getLogger(__name__)


def build_base_query(terms: list[str]) -> dict:
    """query_string over the space-joined terms, or match_all without terms."""
    if terms:
        query_string = " ".join(terms)
        logger.debug("Running query string query: %s", query_string)
        return {"query_string": {"query": query_string}}
    logger.debug("Running match all query")
    return {"match_all": {}}


def build_date_range_filter(qd: QueryDefinition) -> dict:
    """Range filter on the timestamp field: inclusive after, exclusive before.

    Only meaningful when the definition is date filtered.
    """
    bounds = {}
    if qd.after_date_time:
        logger.debug("Date range query - timestamp after: %s", qd.after_date_time)
        bounds["gte"] = qd.after_date_time
    if qd.before_date_time:
        logger.debug("Date range query - timestamp before: %s", qd.before_date_time)
        bounds["lt"] = qd.before_date_time
    return {"range": {qd.timestamp_field: bounds}}


def build_search_query(qd: QueryDefinition) -> dict:
    query = build_base_query(qd.terms)
    if qd.is_date_time_filtered():
        query = {"bool": {"must": query, "filter": build_date_range_filter(qd)}}
    return query


def build_timestamp_filtered_query(qd: QueryDefinition, watermark: str) -> dict:
    """Follow-up query: everything strictly newer than *watermark*."""
    return {
        "bool": {
            "must": build_search_query(qd),
            "filter": {"range": {qd.timestamp_field: {"gt": watermark}}},
        }
    }


def build_search_body(query: dict, sort_field: str, ascending: bool,
                      from_: int, size: int) -> dict:
    return {
        "query": query,
        "sort": [{sort_field: {"order": "asc" if ascending else "desc"}}],
        "from": from_,
        "size": size,
    }
