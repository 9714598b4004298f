"""Allow/deny policy gating which tools may run."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from ..errors import PolicyError

logger = logging.getLogger("miniagent.policy")


class Decision(str, Enum):
    ALLOWED = "allowed"
    DENIED_BY_BLACKLIST = "denied_by_blacklist"
    DENIED_NOT_IN_WHITELIST = "denied_not_in_whitelist"


_REASONS = {
    Decision.DENIED_BY_BLACKLIST: "is in the configured blacklist",
    Decision.DENIED_NOT_IN_WHITELIST: "is not in the configured whitelist",
}


def decide(name: str, allow: Iterable[str], deny: Iterable[str]) -> Decision:
    """Deny always wins; an empty allow set means no restriction."""
    if name in set(deny):
        return Decision.DENIED_BY_BLACKLIST
    allow = set(allow)
    if allow and name not in allow:
        return Decision.DENIED_NOT_IN_WHITELIST
    return Decision.ALLOWED


class ToolPolicy:
    """allow/deny sets bound once at start-up."""

    def __init__(self, allow: Iterable[str] = (), deny: Iterable[str] = ()) -> None:
        self.allow = frozenset(allow)
        self.deny = frozenset(deny)

    def decide(self, name: str) -> Decision:
        return decide(name, self.allow, self.deny)

    def enforce(self, name: str) -> None:
        decision = self.decide(name)
        if decision is not Decision.ALLOWED:
            logger.warning(f"Policy refused '{name}': {decision.value}")
            raise PolicyError(name, _REASONS[decision])

    def __repr__(self) -> str:
        return f"ToolPolicy(allow={sorted(self.allow)}, deny={sorted(self.deny)})"
