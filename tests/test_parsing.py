"""Tests for violation and rule parsing, including rule-detail enrichment."""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from lintdesk.exceptions import InvalidOutputError, ToolExecutionError
from lintdesk.models import RuleCategory, Severity
from lintdesk.parsing import enrich_rules, parse_rules, parse_violations, relativize
from lintdesk.parsing.rules import RuleCatalog, apply_detail

ROOT = "/work/App"


def report(*records) -> bytes:
    return json.dumps(list(records)).encode()


def record(**overrides):
    base = {
        "file": f"{ROOT}/Sources/A.swift",
        "line": 12,
        "character": 5,
        "rule_id": "force_cast",
        "severity": "Error",
        "reason": "Force casts should be avoided",
    }
    base.update(overrides)
    return {k: v for k, v in base.items() if v is not None}


class TestParseViolations:
    def test_parses_a_record(self):
        (v,) = parse_violations(report(record()), ROOT)
        assert v.rule_id == "force_cast"
        assert v.file_path == "Sources/A.swift"
        assert v.line == 12
        assert v.column == 5
        assert v.severity is Severity.ERROR
        assert v.message == "Force casts should be avoided"

    def test_empty_output_is_no_violations(self):
        assert parse_violations(b"", ROOT) == []
        assert parse_violations(b"  \n", ROOT) == []
        assert parse_violations(b"[]", ROOT) == []

    def test_invalid_json_raises(self):
        with pytest.raises(InvalidOutputError):
            parse_violations(b"Linting Swift files...", ROOT)

    def test_non_array_raises(self):
        with pytest.raises(InvalidOutputError):
            parse_violations(b'{"file": "x"}', ROOT)

    def test_malformed_record_is_dropped(self):
        raw = report(record(), record(line=None), record(reason=None), "junk", record(line=3))
        found = parse_violations(raw, ROOT)
        assert [v.line for v in found] == [12, 3]

    def test_boolean_line_is_rejected(self):
        assert parse_violations(report(record(line=True)), ROOT) == []

    def test_column_is_optional(self):
        (v,) = parse_violations(report(record(character=None)), ROOT)
        assert v.column is None

    def test_type_and_message_fallback_keys(self):
        raw = report(record(rule_id=None, reason=None, type="Line Length", message="Too long"))
        (v,) = parse_violations(raw, ROOT)
        assert v.rule_id == "Line Length"
        assert v.message == "Too long"

    @pytest.mark.parametrize(
        "raw_severity, expected",
        [
            ("Error", Severity.ERROR),
            ("error", Severity.ERROR),
            ("Warning", Severity.WARNING),
            ("fatal", Severity.WARNING),
        ],
    )
    def test_severity_mapping(self, raw_severity, expected):
        (v,) = parse_violations(report(record(severity=raw_severity)), ROOT)
        assert v.severity is expected

    def test_batch_shares_detection_time(self):
        stamp = datetime(2024, 5, 1, tzinfo=timezone.utc)
        found = parse_violations(report(record(), record(line=2)), ROOT, detected_at=stamp)
        assert {v.detected_at for v in found} == {stamp}

    def test_ids_are_unique_per_parse(self):
        first = parse_violations(report(record()), ROOT)
        second = parse_violations(report(record()), ROOT)
        assert first[0].id != second[0].id
        assert first[0].identity_key == second[0].identity_key


class TestRelativize:
    def test_strips_workspace_prefix(self):
        assert relativize(f"{ROOT}/Sources/A.swift", ROOT) == "Sources/A.swift"

    def test_trailing_slash_on_root(self):
        assert relativize(f"{ROOT}/A.swift", ROOT + "/") == "A.swift"

    def test_outside_workspace_is_unchanged(self):
        assert relativize("/elsewhere/B.swift", ROOT) == "/elsewhere/B.swift"

    def test_sibling_with_common_prefix_is_unchanged(self):
        assert relativize("/work/AppKit/C.swift", ROOT) == "/work/AppKit/C.swift"

    def test_relative_path_passes_through(self):
        assert relativize("Sources/A.swift", ROOT) == "Sources/A.swift"


class TestParseRules:
    def test_parses_rule_list(self):
        raw = json.dumps(
            [
                {"identifier": "force_cast", "kind": "idiomatic", "opt_in": False, "correctable": False},
                {"identifier": "sorted_imports", "kind": "style", "opt_in": "yes", "correctable": "yes"},
                {"name": "no identifier"},
            ]
        )
        rules = parse_rules(raw)
        assert [r.id for r in rules] == ["force_cast", "sorted_imports"]
        assert rules[0].category is RuleCategory.IDIOMATIC
        assert rules[1].is_opt_in and rules[1].supports_autocorrection
        assert rules[0].name == "Force Cast"

    def test_unknown_category_is_style(self):
        (rule,) = parse_rules('[{"identifier": "x", "kind": "weird"}]')
        assert rule.category is RuleCategory.STYLE

    def test_invalid_json_raises(self):
        with pytest.raises(InvalidOutputError):
            parse_rules("nope")

    def test_apply_detail_sets_documentation(self):
        (rule,) = parse_rules('[{"identifier": "force_cast"}]')
        enriched = apply_detail(rule, b"# Force Cast\n\nForce casts should be avoided.\n")
        assert enriched.enriched
        assert enriched.description == "Force Cast"
        assert "Force casts should be avoided." in enriched.documentation


class TestEnrichRules:
    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_unenriched_rule(self):
        rules = parse_rules('[{"identifier": "fast"}, {"identifier": "slow"}, {"identifier": "fast2"}]')

        async def fetch(rule_id):
            if rule_id == "slow":
                await asyncio.sleep(5)
            return f"{rule_id} docs".encode()

        result = await enrich_rules(rules, fetch, concurrency=2, timeout=0.05)
        assert [r.id for r in result] == ["fast", "slow", "fast2"]
        assert [r.enriched for r in result] == [True, False, True]

    @pytest.mark.asyncio
    async def test_tool_error_falls_back(self):
        rules = parse_rules('[{"identifier": "broken"}]')

        async def fetch(rule_id):
            raise ToolExecutionError("swiftlint rules broken", 1, "boom")

        (rule,) = await enrich_rules(rules, fetch)
        assert not rule.enriched

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        rules = parse_rules(json.dumps([{"identifier": f"r{i}"} for i in range(12)]))
        active = 0
        peak = 0

        async def fetch(rule_id):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return b"docs"

        await enrich_rules(rules, fetch, concurrency=3)
        assert peak == 3

    @pytest.mark.asyncio
    async def test_catalog_without_enrichment(self):
        class Adapter:
            async def run_rules_list(self):
                return b'[{"identifier": "force_cast"}]'

            async def run_rule_detail(self, rule_id):
                raise AssertionError("details must not be fetched")

        rules = await RuleCatalog(Adapter()).load(enrich=False)
        assert [r.id for r in rules] == ["force_cast"]
