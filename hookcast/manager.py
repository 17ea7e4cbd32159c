"""Channel manager: turn one hook event into concurrent per-channel deliveries."""
from __future__ import annotations

import concurrent.futures
import threading
import time
from collections.abc import Mapping, Sequence
from typing import NamedTuple

from hookcast._log import debug, log
from hookcast._types import AppConfig, ChannelConfig
from hookcast.analyzer import SessionStatus, analyze
from hookcast.channels import Channel, NotificationRequest, create_channel
from hookcast.config import ACTIVE_TOOL_TASK_COMPLETE, DEFAULT_TIMEOUT_MS
from hookcast.hooks import (
    HookEvent,
    event_message,
    event_tool_names,
    needs_transcript,
    template_vars,
)
from hookcast.router import override_channels, resolve
from hookcast.templates import select_template

TEST_TITLE = "hookcast test"
TEST_MESSAGE = "This is a test notification from hookcast"


class DispatchResult(NamedTuple):
    channel_id: str
    succeeded: bool
    error: str | None = None
    elapsed: float = 0.0


class DispatchReport(NamedTuple):
    results: list[DispatchResult]
    elapsed: float = 0.0

    @property
    def succeeded(self) -> bool:
        """True if any channel delivered, or if nothing was routed at all."""
        return not self.results or any(r.succeeded for r in self.results)

    @property
    def failed(self) -> list[DispatchResult]:
        return [r for r in self.results if not r.succeeded]


class _Job(NamedTuple):
    channel_id: str
    channel: Channel
    config: ChannelConfig
    title_template: str
    body_template: str


class ChannelManager:
    """Routes events and fans deliveries out to the configured channels."""

    def __init__(self, config: AppConfig, *, debug: bool | None = None, dry_run: bool = False) -> None:
        self.config = config
        self.debug = config.get("debug", False) if debug is None else debug
        self.dry_run = dry_run

    # ── Channel lookup ───────────────────────────────────────────────────────

    def _channel_for(self, channel_id: str, *, require_enabled: bool = True) -> tuple[Channel, ChannelConfig] | None:
        cfg = self.config.get("channels", {}).get(channel_id)
        if cfg is None:
            log(f"Channel '{channel_id}' is not configured, skipping")
            return None
        if require_enabled and not cfg.get("enabled", False):
            debug(self.debug, "manager", f"Channel '{channel_id}' is disabled, skipping")
            return None
        channel_type = cfg.get("channel_type") or channel_id
        channel = create_channel(channel_type, debug=self.debug)
        if channel is None:
            log(f"Channel '{channel_id}' has unknown type '{channel_type}', skipping")
            return None
        return channel, cfg

    def _jobs(self, channel_ids: Sequence[str], kind: str) -> list[_Job]:
        templates = self.config.get("global_templates", {})
        jobs: list[_Job] = []
        for channel_id in channel_ids:
            found = self._channel_for(channel_id)
            if found is None:
                continue
            channel, cfg = found
            title_t, body_t = select_template(kind, cfg.get("message_template"), templates)
            jobs.append(_Job(channel_id, channel, cfg, title_t, body_t))
        return jobs

    # ── Delivery ─────────────────────────────────────────────────────────────

    def _deliver(self, job: _Job, variables: Mapping[str, str]) -> DispatchResult:
        """Render and deliver one channel. Runs on a worker thread; never raises."""
        start = time.monotonic()
        try:
            title, body = job.channel.render(job.title_template, job.body_template, variables)
            request = NotificationRequest(
                title=title,
                body=body,
                timeout_ms=job.config.get("timeout_ms", DEFAULT_TIMEOUT_MS),
                icon=job.config.get("icon"),
                sound=job.config.get("sound"),
            )
            if self.dry_run:
                log(f"[dry-run] {job.channel_id} ({job.channel.channel_type}): {title!r} / {body!r}")
            else:
                job.channel.deliver(request, job.config)
        except Exception as e:
            elapsed = time.monotonic() - start
            log(f"Channel '{job.channel_id}' failed after {elapsed:.2f}s: {e}")
            return DispatchResult(job.channel_id, False, str(e) or type(e).__name__, elapsed)
        elapsed = time.monotonic() - start
        debug(self.debug, "manager", f"Channel '{job.channel_id}' delivered in {elapsed:.2f}s")
        return DispatchResult(job.channel_id, True, None, elapsed)

    def _start(self, job: _Job, variables: Mapping[str, str]) -> concurrent.futures.Future[DispatchResult]:
        """Run one delivery on a daemon thread.

        A delivery that outlives its deadline is abandoned: daemon threads are
        not joined at interpreter exit, so a hung webhook cannot keep the hook
        process alive.
        """
        future: concurrent.futures.Future[DispatchResult] = concurrent.futures.Future()

        def _target() -> None:
            future.set_result(self._deliver(job, variables))

        threading.Thread(target=_target, name=f"hookcast-channel-{job.channel_id}", daemon=True).start()
        return future

    def _run(self, jobs: list[_Job], variables: Mapping[str, str]) -> DispatchReport:
        if not jobs:
            return DispatchReport([], 0.0)

        start = time.monotonic()
        futures = [(job, self._start(job, variables)) for job in jobs]
        results: list[DispatchResult] = []
        for job, future in futures:
            timeout = job.config.get("timeout_ms", DEFAULT_TIMEOUT_MS) / 1000
            remaining = max(0.0, start + timeout - time.monotonic())
            try:
                results.append(future.result(timeout=remaining))
            except concurrent.futures.TimeoutError:
                log(f"Channel '{job.channel_id}' timed out after {timeout:.1f}s")
                results.append(DispatchResult(job.channel_id, False, f"Timed out after {timeout:.1f}s", timeout))

        report = DispatchReport(results, time.monotonic() - start)
        ok = sum(1 for r in results if r.succeeded)
        debug(self.debug, "manager", f"Dispatched to {ok}/{len(results)} channel(s) in {report.elapsed:.2f}s")
        return report

    def dispatch(self, channel_ids: Sequence[str], variables: Mapping[str, str], kind: str) -> DispatchReport:
        """Deliver to every enabled, known channel in ``channel_ids`` concurrently.

        Unknown, disabled or unknown-type ids are dropped. Each channel gets
        its own deadline (``timeout_ms``); a failure or timeout on one channel
        does not affect the others.
        """
        return self._run(self._jobs(channel_ids, kind), variables)

    # ── Entry points ─────────────────────────────────────────────────────────

    def notify(self, event: HookEvent, channels: Sequence[str] | None = None) -> DispatchReport:
        """Analyze (when relevant), route and dispatch a hook event.

        ``channels`` overrides routing with an explicit list of channel ids.
        """
        summary: str | None = None
        status: str | None = None
        tool_names = event_tool_names(event)

        if needs_transcript(event):
            analysis = analyze(
                event.transcript_path or "",
                active_tool_status=self.config.get("active_tool_status", ACTIVE_TOOL_TASK_COMPLETE),
                debug_enabled=self.debug,
            )
            status = analysis.status.value
            if analysis.status is not SessionStatus.UNKNOWN:
                summary = analysis.summary
            tool_names = analysis.tools + [t for t in tool_names if t not in analysis.tools]

        message = event_message(event, summary)
        if channels is not None:
            channel_ids = override_channels(channels)
        else:
            channel_ids = resolve(
                event,
                self.config.get("routing_rules", []),
                self.config.get("default_channels", []),
                message=message,
                tool_names=tool_names,
            )
        debug(self.debug, "manager", f"{event.kind}: channels={channel_ids} message={message!r}")
        return self.dispatch(channel_ids, template_vars(event, summary, status), event.kind)

    def test_channel(self, channel_id: str) -> DispatchResult:
        """Validate a channel and send a fixed test message, enabled or not."""
        found = self._channel_for(channel_id, require_enabled=False)
        if found is None:
            return DispatchResult(channel_id, False, f"Channel '{channel_id}' is not available")
        channel, cfg = found
        problems = channel.validate(cfg)
        if problems:
            return DispatchResult(channel_id, False, "; ".join(problems))
        job = _Job(channel_id, channel, cfg, TEST_TITLE, "{{message}}")
        variables = {"message": TEST_MESSAGE, "hook_type": "Test"}
        return self._run([job], variables).results[0]
