"""Rule list parsing and background rule-detail enrichment.

``rules --format json`` yields one object per rule. Details (documentation)
come from one ``rules <id>`` call per rule; those calls run in a bounded pool
and each one races a timer. A rule whose detail fetch times out or fails is
returned as-is, so one slow rule never fails the whole list.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from typing import Any, Awaitable, Callable, Optional

from ..exceptions import InvalidOutputError, LintdeskError
from ..logging_config import get_logger
from ..models import Rule, RuleCategory

logger = get_logger(__name__)

DetailFetcher = Callable[[str], Awaitable[bytes]]


def parse_rules(raw: bytes | str) -> list[Rule]:
    """Parse the JSON rule list; entries without an identifier are dropped."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    if not text.strip():
        return []
    try:
        records = json.loads(text)
    except ValueError as e:
        raise InvalidOutputError("rule list is not valid JSON", text.strip()) from e
    if not isinstance(records, list):
        raise InvalidOutputError(f"expected a JSON array, got {type(records).__name__}")

    rules = []
    for record in records:
        rule = _parse_rule(record)
        if rule is not None:
            rules.append(rule)
    return rules


def _parse_rule(record: Any) -> Optional[Rule]:
    if not isinstance(record, dict):
        return None
    identifier = record.get("identifier") or record.get("id")
    if not isinstance(identifier, str) or not identifier.strip():
        return None
    identifier = identifier.strip()

    name = record.get("name")
    if not isinstance(name, str) or not name:
        name = identifier.replace("_", " ").title()

    description = record.get("description")
    return Rule(
        id=identifier,
        name=name,
        category=RuleCategory.parse(record.get("kind", record.get("category"))),
        is_opt_in=_truthy(record.get("opt_in", record.get("is_opt_in"))),
        supports_autocorrection=_truthy(record.get("correctable")),
        description=description if isinstance(description, str) else "",
    )


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "1")
    return bool(value)


def apply_detail(rule: Rule, raw: bytes | str) -> Rule:
    """Return ``rule`` enriched with the text of a ``rules <id>`` call."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    text = text.strip()
    if not text:
        return rule
    description = rule.description or _first_paragraph(text)
    return replace(rule, documentation=text, description=description, enriched=True)


def _first_paragraph(text: str) -> str:
    lines = []
    for line in text.splitlines():
        stripped = line.strip().lstrip("#").strip()
        if not stripped:
            if lines:
                break
            continue
        lines.append(stripped)
    return " ".join(lines)


async def enrich_rules(
    rules: list[Rule],
    fetch_detail: DetailFetcher,
    concurrency: int = 10,
    timeout: float = 30.0,
) -> list[Rule]:
    """Fetch details for every rule, at most ``concurrency`` at a time.

    Each unit is bounded by ``timeout``; on timeout or a tool error the
    unenriched rule is kept. Output order matches input order.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")
    semaphore = asyncio.Semaphore(concurrency)

    async def _one(rule: Rule) -> Rule:
        async with semaphore:
            try:
                raw = await asyncio.wait_for(fetch_detail(rule.id), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Rule detail fetch timed out for %s", rule.id)
                return rule
            except LintdeskError as e:
                logger.warning("Rule detail fetch failed for %s: %s", rule.id, e)
                return rule
            return apply_detail(rule, raw)

    return list(await asyncio.gather(*(_one(rule) for rule in rules)))


class RuleCatalog:
    """Loads the tool's rule list, optionally enriched with details."""

    def __init__(self, adapter, concurrency: int = 10, timeout: float = 30.0):
        self.adapter = adapter
        self.concurrency = concurrency
        self.timeout = timeout

    async def load(self, enrich: bool = True) -> list[Rule]:
        rules = parse_rules(await self.adapter.run_rules_list())
        logger.info("Parsed %d rules", len(rules))
        if enrich and rules:
            rules = await self.enrich(rules)
        return rules

    async def enrich(self, rules: list[Rule]) -> list[Rule]:
        enriched = await enrich_rules(
            rules,
            self.adapter.run_rule_detail,
            concurrency=self.concurrency,
            timeout=self.timeout,
        )
        fallback = sum(1 for r in enriched if not r.enriched)
        if fallback:
            logger.info("%d of %d rules kept without details", fallback, len(enriched))
        return enriched
