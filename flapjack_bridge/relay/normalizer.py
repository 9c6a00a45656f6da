"""Pure functions that turn a monitoring event into a CanonicalAlert."""

from __future__ import annotations

from flapjack_bridge.core.config import FlapjackConfig
from flapjack_bridge.core.types import CanonicalAlert, CheckResult, ClientInfo, RawEvent

NAGIOS_OUTPUT_TYPE = "nagios"
PERFDATA_DELIMITER = "|"

# ── Severity mapping ────────────────────────────────────────────

_SEVERITIES: dict[int, str] = {
    0: "ok",
    1: "warning",
    2: "critical",
    3: "unknown",
}


def map_severity(status: int) -> str:
    """Map a check exit status to a Flapjack state; unmapped codes are unknown."""
    return _SEVERITIES.get(status, "unknown")


# ── Output parsing ──────────────────────────────────────────────


def split_nagios_output(output: str) -> tuple[str, str | None]:
    """Split ``TEXT | PERFDATA`` plugin output.

    Everything after the first delimiter is perfdata, further delimiters
    included. Output without a delimiter is returned unchanged.
    """
    if PERFDATA_DELIMITER not in output:
        return output, None
    text, _, perfdata = output.partition(PERFDATA_DELIMITER)
    return text.strip(), perfdata.strip()


def parse_output(check: CheckResult) -> tuple[str, str | None]:
    """Return (text, perfdata) for the check, honouring its output_type."""
    if check.output_type == NAGIOS_OUTPUT_TYPE:
        return split_nagios_output(check.output)
    return check.output, None


# ── Tags and details ────────────────────────────────────────────


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _subscribed_tags(client: ClientInfo, check: CheckResult) -> list[str]:
    if not check.subscribers:
        return list(client.subscriptions)
    # Client subscriptions minus (client subscriptions minus subscribers):
    # keeps client order and any repeats.
    unsubscribed = {s for s in client.subscriptions if s not in check.subscribers}
    return [s for s in client.subscriptions if s not in unsubscribed]


def derive_tags(client: ClientInfo, check: CheckResult) -> list[str]:
    """Collect tags from the client, the check, and the client's role data.

    Order: client tags, check tags, environment, (matching) subscriptions,
    roles. Duplicates are dropped, first occurrence wins.
    """
    tags: list[str] = []
    if client.tags:
        tags.extend(client.tags)
    if check.tags:
        tags.extend(check.tags)
    if client.environment is not None:
        tags.append(client.environment)
    tags.extend(_subscribed_tags(client, check))
    if client.roles is not None:
        tags.extend(client.roles.split())
    return _unique(tags)


def build_details(client: ClientInfo, check: CheckResult, tags: list[str]) -> str:
    details = ["Address:" + client.address, "Tags:" + ",".join(tags)]
    if check.notification is not None:
        details.append(f"Raw Output: {check.output}")
    return " ".join(details)


# ── Alert construction ──────────────────────────────────────────


def normalize(event: RawEvent, config: FlapjackConfig) -> CanonicalAlert:
    """Build the CanonicalAlert for *event*.

    Check-level failure delays override the configured defaults. The
    event itself is never modified.
    """
    client = event.client
    check = event.check

    text, perfdata = parse_output(check)
    tags = derive_tags(client, check)

    initial_failure_delay = config.initial_failure_delay
    if check.initial_failure_delay is not None:
        initial_failure_delay = check.initial_failure_delay
    repeat_failure_delay = config.repeat_failure_delay
    if check.repeat_failure_delay is not None:
        repeat_failure_delay = check.repeat_failure_delay

    return CanonicalAlert(
        entity=client.name,
        check=check.name,
        state=map_severity(check.status),
        summary=text if check.notification is None else check.notification,
        details=build_details(client, check, tags),
        time=check.executed,
        tags=tags,
        perfdata=perfdata,
        initial_failure_delay=initial_failure_delay,
        repeat_failure_delay=repeat_failure_delay,
    )
