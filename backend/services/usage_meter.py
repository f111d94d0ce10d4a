"""
Monthly usage quota.

Every paid action (dashboard generation, Q&A, chart explanation, synthetic
rows) is checked against the meter before it starts and charged after it
succeeds. The charge re-checks the balance under the lock, so an action
authorized against credits another caller has since spent is declined
rather than overspending. There is no refund path: a debit is final.

The quota record is persisted as {"balance": int, "periodKey": "YYYY-MM"}.
It is reset to the full allotment lazily, on the first read after the
calendar month changes.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Optional, Protocol

from models.schemas import UsageDecision, UsageStatus

logger = logging.getLogger(__name__)


# === Configuration ===

TOTAL_CREDITS = 10000

USAGE_COSTS = {
    "dashboard_generation": 25,
    "qa_query": 5,
    "chart_explanation": 1,
    "synthetic_row": 1,
}

# Actions billed per unit (synthetic rows are billed per generated row)
PER_UNIT_ACTIONS = {"synthetic_row"}

USAGE_STATE_KEY = "autodash-usage"


class KeyValueStore(Protocol):
    def get_value(self, key: str) -> Optional[Any]: ...

    def set_value(self, key: str, value: Any) -> None: ...


def cost_for(action: str, units: int = 1) -> int:
    """Credit cost of an action; only per-unit actions scale with ``units``."""
    if action not in USAGE_COSTS:
        raise ValueError(f"Unknown usage action: {action}")
    if units < 1:
        raise ValueError("units must be at least 1")
    if action in PER_UNIT_ACTIONS:
        return USAGE_COSTS[action] * units
    return USAGE_COSTS[action]


def current_period_key(now: datetime) -> str:
    """Billing period key for a moment in time, e.g. '2024-03'."""
    return f"{now.year}-{now.month:02d}"


def next_reset_label(period_key: str) -> str:
    """First day of the month after ``period_key``, e.g. 'April 1'."""
    year, month = (int(part) for part in period_key.split("-"))
    if month == 12:
        reset = date(year + 1, 1, 1)
    else:
        reset = date(year, month + 1, 1)
    return f"{reset.strftime('%B')} {reset.day}"


@dataclass
class QuotaState:
    balance: int
    period_key: str

    def to_record(self) -> dict:
        return {"balance": self.balance, "periodKey": self.period_key}

    @classmethod
    def from_record(cls, record: dict) -> "QuotaState":
        return cls(balance=int(record["balance"]), period_key=str(record["periodKey"]))


class UsageMeter:
    """
    Owner of the persisted quota state.

    Each read-reset-write, each debit and each check-then-debit charge runs
    under one lock, so concurrent requests in one process never interleave
    inside a state transition.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], datetime] = datetime.now,
        total_credits: int = TOTAL_CREDITS,
    ):
        self.store = store
        self.clock = clock
        self.total_credits = total_credits
        self._lock = threading.RLock()

    def _save(self, state: QuotaState) -> None:
        self.store.set_value(USAGE_STATE_KEY, state.to_record())

    def _load(self) -> Optional[QuotaState]:
        record = self.store.get_value(USAGE_STATE_KEY)
        if record is None:
            return None
        try:
            return QuotaState.from_record(record)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding unreadable usage record: %r", record)
            return None

    def state(self) -> QuotaState:
        """Current quota, reset to the full allotment if the month rolled over."""
        with self._lock:
            period_key = current_period_key(self.clock())
            state = self._load()
            if state is None or state.period_key != period_key:
                state = QuotaState(balance=self.total_credits, period_key=period_key)
                self._save(state)
                logger.info("Usage quota reset to %d credits for %s", self.total_credits, period_key)
            return state

    def can_afford(self, cost: int) -> bool:
        return self.state().balance >= cost

    def debit(self, cost: int) -> QuotaState:
        """Spend ``cost`` credits; the balance never drops below zero."""
        if cost < 0:
            raise ValueError("cost must not be negative")
        with self._lock:
            state = self.state()
            state.balance = max(0, state.balance - cost)
            self._save(state)
        logger.info("Debited %d credits, %d remaining", cost, state.balance)
        return state

    def next_reset_label(self) -> str:
        return next_reset_label(self.state().period_key)

    def _decide(self, action: str, cost: int, state: QuotaState) -> UsageDecision:
        resets_on = next_reset_label(state.period_key)

        if state.balance >= cost:
            return UsageDecision(allowed=True, cost=cost, remaining=state.balance, resets_on=resets_on)

        logger.info("Declined %s: needs %d credits, %d remaining", action, cost, state.balance)
        return UsageDecision(
            allowed=False,
            cost=cost,
            remaining=state.balance,
            resets_on=resets_on,
            message=(
                f"You have reached your monthly usage limit. This action needs {cost} credits "
                f"but you have {state.balance}. Your limit will reset on {resets_on}."
            ),
        )

    def authorize(self, action: str, units: int = 1) -> UsageDecision:
        """Decide whether ``action`` may start. Nothing is debited here."""
        cost = cost_for(action, units)
        return self._decide(action, cost, self.state())

    def charge(self, action: str, units: int = 1) -> UsageDecision:
        """
        Check the balance and debit ``action`` as one step.

        Two callers authorized against the same last credits cannot both be
        charged: the second sees the debited balance and is declined.
        ``remaining`` on an allowed decision is the balance after the debit.
        """
        cost = cost_for(action, units)
        with self._lock:
            decision = self._decide(action, cost, self.state())
            if decision.allowed:
                state = self.debit(cost)
                decision.remaining = state.balance
        return decision

    def status(self) -> UsageStatus:
        state = self.state()
        return UsageStatus(
            remaining=state.balance,
            total=self.total_credits,
            used=self.total_credits - state.balance,
            period_key=state.period_key,
            resets_on=next_reset_label(state.period_key),
        )
