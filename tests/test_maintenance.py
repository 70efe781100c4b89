"""Tests for README maintenance-signal extraction."""

from __future__ import annotations

import pytest

from dephealth.engines.freshness.maintenance import (
    MAX_EXCERPT_LENGTH,
    SIGNAL_RULES,
    VETO_RULES,
    extract_maintenance_signal,
    has_maintenance_keyword,
    is_valid_maintenance_signal,
    rejecting_vetoes,
    vetoes,
)

_RULES = {rule.name: rule for rule in SIGNAL_RULES}


class TestRuleTable:
    def test_strong_rules_come_first(self):
        strengths = [rule.strength for rule in SIGNAL_RULES]
        assert strengths == sorted(strengths, key=lambda s: s != "strong")

    def test_short_excerpt_rejected(self):
        assert not is_valid_maintenance_signal("EOL.", _RULES["eol"])

    def test_strong_rule_ignores_vetoes(self):
        excerpt = "const x = require('x'); // this package is no longer maintained"
        assert vetoes(excerpt)
        assert is_valid_maintenance_signal(excerpt, _RULES["no-longer-maintained"])

    def test_weak_rule_respects_vetoes(self):
        excerpt = "const lib = require('unmaintained-lib')"
        assert not is_valid_maintenance_signal(excerpt, _RULES["unmaintained"])

    def test_phrasing_vetoes_are_the_usage_and_api_rules(self):
        phrasing = {rule.name for rule in VETO_RULES if rule.kind == "phrasing"}
        assert phrasing == {"usage-example", "api-deprecation"}

    @pytest.mark.parametrize(
        "excerpt",
        [
            "For example, this library is unmaintained and will receive no further updates.",
            "The deprecated option is EOL in widget 3.0 and the package goes with it.",
        ],
    )
    def test_keyword_overrides_phrasing_vetoes(self, excerpt):
        assert vetoes(excerpt)
        assert rejecting_vetoes(excerpt) == []
        assert is_valid_maintenance_signal(excerpt, _RULES["unmaintained"])

    def test_phrasing_veto_applies_without_keyword(self):
        excerpt = "For example, pass a custom client to the constructor."
        assert not has_maintenance_keyword(excerpt)
        assert rejecting_vetoes(excerpt) == ["usage-example"]

    def test_keyword_does_not_override_code_vetoes(self):
        excerpt = "let status = 'unmaintained' for the legacy client"
        assert rejecting_vetoes(excerpt) == ["assignment"]
        assert not is_valid_maintenance_signal(excerpt, _RULES["unmaintained"])


class TestVetoes:
    @pytest.mark.parametrize(
        ("text", "rule"),
        [
            ("{ [ ( ; ) ] } = < > {}", "special-characters"),
            ("// unmaintained helper", "code-comment"),
            ("let flag = true", "assignment"),
            ("items.map(x => x)", "function-literal"),
            ("client.connect(options)", "method-call"),
            ("import { widget } from 'widget'", "import"),
            ("For example, the old client is unmaintained", "usage-example"),
            ("The deprecated option is EOL in 3.0", "api-deprecation"),
        ],
    )
    def test_rule_fires(self, text, rule):
        assert rule in vetoes(text)

    def test_prose_has_no_vetoes(self):
        assert vetoes("This library is currently unmaintained and looking for an owner.") == []


class TestExtract:
    @pytest.mark.parametrize("text", [None, ""])
    def test_empty(self, text):
        assert extract_maintenance_signal(text) is None

    @pytest.mark.parametrize(
        "text",
        [
            "This project is no longer maintained. Please use something else.",
            "Note: this package has been deprecated in favour of widget-ng.",
            "Version 2.x is deprecated and will not receive fixes.",
            "The 1.x line reached end-of-life in January.",
            "Heads up: this library is currently unmaintained and looking for an owner.",
            "For example, this library is unmaintained and will receive no further updates.",
            "The deprecated option `legacy` is EOL in widget 3.0",
        ],
    )
    def test_project_level_notices(self, text):
        excerpt = extract_maintenance_signal(text)
        assert excerpt is not None
        assert len(excerpt) >= 20

    @pytest.mark.parametrize(
        "text",
        [
            "const lib = require('unmaintained-lib')",
            "A small, fast widget library with zero dependencies.",
        ],
    )
    def test_code_and_api_docs_ignored(self, text):
        assert extract_maintenance_signal(text) is None

    def test_excerpt_is_sentence_aligned(self):
        text = "Widget renders widgets. This project is no longer maintained. Thanks to all."
        assert extract_maintenance_signal(text) == "This project is no longer maintained."

    def test_whitespace_is_collapsed(self):
        text = "This   project\tis no longer\n maintained by anyone"
        excerpt = extract_maintenance_signal(text)
        assert excerpt is not None
        assert "  " not in excerpt

    def test_excerpt_is_truncated(self):
        text = "word " * 100 + "is no longer maintained " + "word " * 100
        excerpt = extract_maintenance_signal(text)
        assert len(excerpt) == MAX_EXCERPT_LENGTH
        assert excerpt.endswith("...")

    def test_later_occurrence_can_qualify(self):
        text = "const x = 1 // unmaintained\n\nSadly this tool is unmaintained since 2019 now."
        excerpt = extract_maintenance_signal(text)
        assert excerpt == "Sadly this tool is unmaintained since 2019 now."
