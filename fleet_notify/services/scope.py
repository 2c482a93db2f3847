"""
Recipient scope resolution.

A notification is addressed to a scope, the (recipient_type, recipient_id)
pair, or is global when both are NULL. Which notifications a caller sees
depends on the filters it passes; the precedence is kept in explicit ordered
rule tables below and the first applicable rule wins.

LIST_RULES (listing):
    driver_id               -> ("driver", driver_id) + global
    investor_id             -> ("investor", investor_id) + global
    recipient_type + id     -> (recipient_type, recipient_id) + global
    nothing                 -> every notification (admin view)

MARK_RULES (mark-all-as-read and unread counting):
    recipient_type + id     -> (recipient_type, recipient_id) + global
    recipient_type only     -> that type with any id + type IS NULL
    nothing                 -> every notification
"""

from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple


@dataclass(frozen=True)
class ScopeQuery:
    """Filters supplied by a caller"""
    driver_id: Optional[str] = None
    investor_id: Optional[str] = None
    recipient_type: Optional[str] = None
    recipient_id: Optional[str] = None


@dataclass(frozen=True)
class ScopeFilter:
    """
    A resolved filter over the notifications table.

    kind is one of "exact" (one scope plus global), "type" (one recipient
    type with any id plus untyped) or "all" (no filter).
    """
    kind: str
    recipient_type: Optional[str] = None
    recipient_id: Optional[str] = None

    @classmethod
    def exact(cls, recipient_type: str, recipient_id: str) -> "ScopeFilter":
        return cls("exact", recipient_type, str(recipient_id))

    @classmethod
    def of_type(cls, recipient_type: str) -> "ScopeFilter":
        return cls("type", recipient_type)

    @classmethod
    def everything(cls) -> "ScopeFilter":
        return cls("all")

    def to_sql(self, first_param: int = 1) -> Tuple[str, List[str]]:
        """
        Render a WHERE fragment with positional asyncpg parameters starting
        at $first_param.
        """
        p = first_param
        if self.kind == "exact":
            return (
                f"((recipient_type = ${p} AND recipient_id = ${p + 1})"
                " OR (recipient_type IS NULL AND recipient_id IS NULL))",
                [self.recipient_type, self.recipient_id],
            )
        if self.kind == "type":
            return (
                f"(recipient_type = ${p} OR recipient_type IS NULL)",
                [self.recipient_type],
            )
        return "TRUE", []


class Rule(NamedTuple):
    name: str
    applies: Callable[[ScopeQuery], bool]
    build: Callable[[ScopeQuery], ScopeFilter]


def _has_pair(q: ScopeQuery) -> bool:
    return bool(q.recipient_type and q.recipient_id)


LIST_RULES: Tuple[Rule, ...] = (
    Rule("driver", lambda q: bool(q.driver_id),
         lambda q: ScopeFilter.exact("driver", q.driver_id)),
    Rule("investor", lambda q: bool(q.investor_id),
         lambda q: ScopeFilter.exact("investor", q.investor_id)),
    Rule("recipient", _has_pair,
         lambda q: ScopeFilter.exact(q.recipient_type, q.recipient_id)),
    Rule("admin", lambda q: True,
         lambda q: ScopeFilter.everything()),
)

MARK_RULES: Tuple[Rule, ...] = (
    Rule("recipient", _has_pair,
         lambda q: ScopeFilter.exact(q.recipient_type, q.recipient_id)),
    Rule("recipient_type", lambda q: bool(q.recipient_type),
         lambda q: ScopeFilter.of_type(q.recipient_type)),
    Rule("admin", lambda q: True,
         lambda q: ScopeFilter.everything()),
)


def resolve(rules: Tuple[Rule, ...], query: ScopeQuery) -> ScopeFilter:
    for rule in rules:
        if rule.applies(query):
            return rule.build(query)
    return ScopeFilter.everything()


def list_filter(query: ScopeQuery) -> ScopeFilter:
    return resolve(LIST_RULES, query)


def mark_filter(recipient_type: Optional[str] = None, recipient_id: Optional[str] = None) -> ScopeFilter:
    return resolve(MARK_RULES, ScopeQuery(recipient_type=recipient_type, recipient_id=recipient_id))


def room_key(recipient_type: Optional[str], recipient_id: Optional[str]) -> Optional[str]:
    """Realtime room name for a scope, None unless both parts are present"""
    if recipient_type and recipient_id:
        return f"{recipient_type}:{recipient_id}"
    return None
