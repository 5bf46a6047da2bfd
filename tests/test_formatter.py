"""Tests for logstasher/formatter.py"""

import io

from logstasher.formatter import GREEN, RESET, ResultPrinter, colorize, render, template_fields


class TestTemplateFields:
    def test_distinct_in_order(self):
        assert template_fields("%a %b.c %a") == ["%a", "%b.c"]

    def test_allowed_characters(self):
        assert template_fields("[%@timestamp] %host_name-1: %msg") == [
            "%@timestamp", "%host_name-1", "%msg",
        ]


class TestRender:
    def test_nested_field(self):
        assert render("%a.b", {"a": {"b": "X"}}) == "X"

    def test_missing_field_left_unchanged(self):
        assert render("%a.b", {"a": {}}) == "%a.b"

    def test_replaces_all_occurrences(self):
        assert render("%x-%x", {"x": "1"}) == "1-1"

    def test_mixed_resolved_and_unresolved(self):
        doc = {"level": "INFO", "message": "hi"}
        assert render("[%level] %message %user", doc) == "[INFO] hi %user"

    def test_prefix_token_does_not_split_longer_token(self):
        doc = {"a": "short", "ab": "long"}
        assert render("%a %ab", doc) == "short long"

    def test_value_with_percent_not_reexpanded(self):
        assert render("%a %b", {"a": "%b", "b": "B"}) == "%b B"

    def test_literal_text_kept(self):
        assert render("no fields here", {"a": 1}) == "no fields here"


class TestColorize:
    def test_green(self):
        assert colorize("line") == f"{GREEN}line{RESET}"

    def test_disabled(self):
        assert colorize("line", color=False) == "line"


class TestResultPrinter:
    def test_writes_one_line_per_document(self):
        stream = io.StringIO()
        printer = ResultPrinter("%message", color=False, stream=stream)
        printer({"message": "one"})
        printer({"message": "two"})
        assert stream.getvalue() == "one\ntwo\n"
        assert printer.printed == 2

    def test_colored_output(self):
        stream = io.StringIO()
        ResultPrinter("%message", stream=stream)({"message": "one"})
        assert stream.getvalue() == f"{GREEN}one{RESET}\n"
