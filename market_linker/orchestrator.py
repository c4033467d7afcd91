"""Operations runner.

Runs the linking steps in a fixed order against the store. Every step is
isolated: a failure is logged and recorded on its ``StepResult`` and the
remaining steps still run. Nothing is written unless ``apply`` is set.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from market_linker.config import ConfigError, Settings
from market_linker.connectors.base import MarketConnector
from market_linker.engine.diagnostics import TAG_SEPARATOR
from market_linker.engine.matcher import MatchOptions, suggest_links
from market_linker.engine.pipelines.registry import get_pipeline, resolve_topics
from market_linker.engine.reject_rules import evaluate_reject_rules, format_reject_evaluation
from market_linker.engine.safe_rules import DEFAULT_MIN_SCORES, evaluate_safe_rules, format_evaluation
from market_linker.engine.watchlist import WatchlistPolicyConfig, apply_watchlist_policy, format_policy_result
from market_linker.models import LINK_CONFIRMED, LINK_REJECTED, LINK_SUGGESTED

logger = logging.getLogger(__name__)

RULES_VERSION = "3.1.0"

STEP_INGEST = "ingest"
STEP_SUGGEST = "suggest"
STEP_AUTO_CONFIRM = "auto-confirm"
STEP_AUTO_REJECT = "auto-reject"
STEP_WATCHLIST_SYNC = "watchlist-sync"
STEP_FRESHNESS_CHECK = "freshness-check"

STEP_ORDER = (
    STEP_INGEST,
    STEP_SUGGEST,
    STEP_AUTO_CONFIRM,
    STEP_AUTO_REJECT,
    STEP_WATCHLIST_SYNC,
    STEP_FRESHNESS_CHECK,
)
# Ingestion runs only when asked for; the linking steps read whatever is stored.
DEFAULT_STEPS = STEP_ORDER[1:]


def resolve_steps(names: Sequence[str]) -> List[str]:
    unknown = [n for n in names if n not in STEP_ORDER]
    if unknown:
        raise ConfigError(f"unknown steps: {', '.join(unknown)}; expected some of {', '.join(STEP_ORDER)}")
    return [s for s in STEP_ORDER if s in names]


def confirm_tag(topic: str) -> str:
    return f"auto_confirm@{RULES_VERSION}:{topic}:SAFE_RULES"


@dataclass
class RunOptions:
    topics: List[str]
    steps: List[str] = field(default_factory=lambda: list(DEFAULT_STEPS))
    apply: bool = False
    now: Optional[datetime] = None


@dataclass
class StepResult:
    name: str
    success: bool
    duration: float
    summary: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class RunResult:
    steps: List[StepResult] = field(default_factory=list)
    dry_run: bool = True

    @property
    def success(self) -> bool:
        return all(step.success for step in self.steps)

    @property
    def failed_steps(self) -> List[str]:
        return [step.name for step in self.steps if not step.success]

    def format_summary(self) -> str:
        ok = sum(1 for step in self.steps if step.success)
        if self.success:
            status = "success"
        elif ok:
            status = "partial success"
        else:
            status = "failed"
        mode = "dry-run" if self.dry_run else "apply"
        lines = [f"run {status} ({ok}/{len(self.steps)} steps ok, {mode})"]
        for step in self.steps:
            mark = "ok" if step.success else "FAILED"
            line = f"  {step.name:<16} {mark:<6} {step.duration:6.2f}s"
            if step.summary:
                line += " " + " ".join(f"{k}={v}" for k, v in step.summary.items())
            if step.error:
                line += f" error={step.error}"
            lines.append(line)
        return "\n".join(lines)


class OpsRunner:
    def __init__(self, store, settings: Settings, connectors: Sequence[MarketConnector] = ()):
        self.store = store
        self.settings = settings
        self.connectors = list(connectors)

    def run(self, options: RunOptions) -> RunResult:
        topics = resolve_topics(options.topics)
        steps = resolve_steps(options.steps)
        options.now = options.now or datetime.now(timezone.utc)
        handlers: Dict[str, Callable[[RunOptions, List[str]], Dict[str, Any]]] = {
            STEP_INGEST: self.ingest,
            STEP_SUGGEST: self.suggest,
            STEP_AUTO_CONFIRM: self.auto_confirm,
            STEP_AUTO_REJECT: self.auto_reject,
            STEP_WATCHLIST_SYNC: self.watchlist_sync,
            STEP_FRESHNESS_CHECK: self.freshness_check,
        }

        result = RunResult(dry_run=not options.apply)
        for name in steps:
            result.steps.append(self._run_step(name, handlers[name], options, topics))
        logger.info(
            "Run complete",
            extra={"success": result.success, "failed_steps": ",".join(result.failed_steps) or "-"},
        )
        return result

    def _run_step(
        self,
        name: str,
        handler: Callable[[RunOptions, List[str]], Dict[str, Any]],
        options: RunOptions,
        topics: List[str],
    ) -> StepResult:
        started = time.monotonic()
        logger.info("Step started", extra={"step": name, "dry_run": not options.apply})
        try:
            summary = handler(options, topics)
        except Exception as exc:
            logger.exception("Step failed", extra={"step": name})
            return StepResult(name=name, success=False, duration=time.monotonic() - started, error=str(exc))
        duration = time.monotonic() - started
        logger.info("Step finished", extra={"step": name, "duration": round(duration, 3)})
        return StepResult(name=name, success=True, duration=duration, summary=summary)

    def ingest(self, options: RunOptions, topics: List[str]) -> Dict[str, Any]:
        summary: Dict[str, Any] = {}
        failed: List[str] = []
        for connector in self.connectors:
            try:
                records = connector.fetch_markets()
            except Exception:
                logger.exception("Connector failed", extra={"venue": connector.venue})
                failed.append(connector.venue)
                continue
            summary[connector.venue] = len(records)
            if options.apply and records:
                self.store.upsert_markets(records)
        if failed:
            raise RuntimeError(f"connectors failed: {', '.join(failed)}")
        return summary

    def suggest(self, options: RunOptions, topics: List[str]) -> Dict[str, Any]:
        settings = self.settings
        lefts = self.store.list_markets(
            settings.left_venue,
            lookback_hours=settings.match_lookback_hours,
            limit=settings.match_limit_left,
        )
        rights = self.store.list_markets(
            settings.right_venue,
            lookback_hours=settings.match_lookback_hours,
            limit=settings.match_limit_right,
        )
        match_options = MatchOptions.from_settings(settings)

        summary: Dict[str, Any] = {}
        for topic in topics:
            result = suggest_links(get_pipeline(topic), lefts, rights, match_options)
            summary[topic] = len(result.links)
            if options.apply and result.links:
                written = self.store.upsert_link_suggestions(result.links)
                logger.info("Suggestions written", extra={"topic": topic, **written})
        return summary

    def auto_confirm(self, options: RunOptions, topics: List[str]) -> Dict[str, Any]:
        confirmed = 0
        evaluated = 0
        failures: Counter = Counter()
        for topic in topics:
            for link in self.store.list_links(LINK_SUGGESTED, topic=topic, limit=self.settings.confirm_limit):
                evaluated += 1
                evaluation = evaluate_safe_rules(link, topic)
                if not evaluation.passed:
                    failures.update(evaluation.failed_rules)
                    continue
                confirmed += 1
                logger.debug("Auto-confirm\n%s", format_evaluation(evaluation))
                if options.apply and link.id:
                    reason = f"{link.reason}{TAG_SEPARATOR}{confirm_tag(topic)}"
                    self.store.update_link_status(link.id, LINK_CONFIRMED, reason)
        top = ",".join(f"{rule}:{n}" for rule, n in failures.most_common(3)) or "-"
        return {"evaluated": evaluated, "confirmed": confirmed, "top_failures": top}

    def auto_reject(self, options: RunOptions, topics: List[str]) -> Dict[str, Any]:
        rejected = 0
        evaluated = 0
        too_fresh = 0
        for topic in topics:
            for link in self.store.list_links(LINK_SUGGESTED, topic=topic, limit=self.settings.reject_limit):
                evaluated += 1
                evaluation = evaluate_reject_rules(
                    link, topic, min_age_hours=self.settings.reject_min_age_hours, now=options.now
                )
                if not evaluation.reject:
                    if evaluation.results and evaluation.results[0].rule_id == "AGE_TOO_FRESH":
                        too_fresh += 1
                    continue
                rejected += 1
                logger.debug("Auto-reject\n%s", format_reject_evaluation(evaluation))
                if options.apply and link.id:
                    tag = "auto_reject:" + ",".join(evaluation.rejection_reasons)
                    self.store.update_link_status(link.id, LINK_REJECTED, f"{link.reason}{TAG_SEPARATOR}{tag}")
        return {"evaluated": evaluated, "rejected": rejected, "too_fresh": too_fresh}

    def watchlist_sync(self, options: RunOptions, topics: List[str]) -> Dict[str, Any]:
        config = WatchlistPolicyConfig.from_settings(self.settings)
        floor = min(
            [config.min_score_top_suggested, *config.min_score_safe.values(), *DEFAULT_MIN_SCORES.values()]
        )
        confirmed = self.store.list_links(LINK_CONFIRMED)
        suggested = self.store.list_links(LINK_SUGGESTED, min_score=floor)
        result = apply_watchlist_policy(confirmed, suggested, config)
        logger.info("Watchlist policy\n%s", format_policy_result(result))
        if options.apply and result.candidates:
            self.store.upsert_watchlist(result.candidates)
        stats = result.stats
        return {
            "candidates": stats.total_unique,
            "dropped_by_venue_cap": stats.dropped_by_venue_cap,
            "dropped_by_total_cap": stats.dropped_by_total_cap,
        }

    def freshness_check(self, options: RunOptions, topics: List[str]) -> Dict[str, Any]:
        since = options.now - timedelta(minutes=self.settings.freshness_minutes)
        summary: Dict[str, Any] = {}
        for venue in dict.fromkeys((self.settings.left_venue, self.settings.right_venue)):
            count = self.store.count_fresh_markets(venue, since)
            summary[venue] = count
            if count == 0:
                logger.warning("No fresh markets", extra={"venue": venue, "minutes": self.settings.freshness_minutes})
        return summary
