# taskpulse/utils/db/counter_repository.py
import copy
import logging
import uuid
from datetime import timedelta
from typing import Dict, List, Optional

import pandas as pd
from dateutil.relativedelta import relativedelta

from taskpulse.utils.clock import SystemClock
from taskpulse.utils.db.models import Counter, CounterEntry, counter_from_row, counter_to_row
from taskpulse.utils.db.storage import COUNTERS_KEY
from taskpulse.utils.error_handler import ValidationError, sanitize_string

logger = logging.getLogger(__name__)

HISTORY_PERIODS = ("weekly", "monthly", "yearly")


class CounterStore:
    """Tally counters with a timestamped history of increments."""

    def __init__(self, storage, clock=None):
        self.storage = storage
        self.clock = clock or SystemClock()
        self._counters: Dict[str, Counter] = {}
        self.load()

    def load(self) -> None:
        rows = self.storage.load(COUNTERS_KEY)
        if rows is not None and not isinstance(rows, list):
            logger.warning("Stored counters are not a list; starting empty")
            rows = None
        self._counters = {}
        for row in rows or []:
            counter = counter_from_row(row)
            if counter is not None:
                self._counters[counter.id] = counter

    def save(self) -> None:
        self.storage.save(COUNTERS_KEY, [counter_to_row(c) for c in self._counters.values()])

    def _get(self, counter_id: str) -> Counter:
        counter = self._counters.get(counter_id)
        if counter is None:
            raise KeyError(f"No counter with id {counter_id!r}")
        return counter

    def get_all_counters(self) -> List[Counter]:
        return [copy.deepcopy(c) for c in self._counters.values()]

    def get_counter(self, counter_id: str) -> Optional[Counter]:
        counter = self._counters.get(counter_id)
        return copy.deepcopy(counter) if counter else None

    def add_counter(self, name: str) -> Counter:
        name = sanitize_string(name, max_length=100)
        if not name:
            raise ValidationError("Counter name is required")
        counter = Counter(id=str(uuid.uuid4()), name=name, count=0, created_at=self.clock.now())
        self._counters[counter.id] = counter
        self.save()
        logger.info(f"Added counter {counter.id}: {name}")
        return copy.deepcopy(counter)

    def delete_counter(self, counter_id: str) -> Optional[Counter]:
        counter = self._counters.pop(counter_id, None)
        if counter is not None:
            self.save()
            logger.info(f"Deleted counter {counter_id}")
        return counter

    def increment(self, counter_id: str) -> Counter:
        counter = self._get(counter_id)
        counter.count += 1
        counter.history.append(CounterEntry(date=self.clock.now(), count=1))
        self.save()
        return copy.deepcopy(counter)

    def reset(self, counter_id: str) -> Counter:
        """Zero the running count; history is kept for reporting."""
        counter = self._get(counter_id)
        counter.count = 0
        self.save()
        return copy.deepcopy(counter)

    def rename(self, counter_id: str, name: str) -> Counter:
        name = sanitize_string(name, max_length=100)
        if not name:
            raise ValidationError("Counter name is required")
        counter = self._get(counter_id)
        counter.name = name
        self.save()
        return copy.deepcopy(counter)

    def get_counter_history(self, counter_id: str, period: str = "weekly") -> List[dict]:
        """
        Increments summed per bucket for a reporting window:
        - weekly: last 7 days, one bucket per day labelled M/D
        - monthly: last 30 days, labelled M/D
        - yearly: last year, one bucket per month labelled M/YYYY
        Returns [{"date": label, "count": n}, ...] oldest first.
        """
        if period not in HISTORY_PERIODS:
            raise ValidationError(f"Period must be one of: {', '.join(HISTORY_PERIODS)}")
        counter = self._counters.get(counter_id)
        if counter is None or not counter.history:
            return []

        now = self.clock.now()
        if period == "weekly":
            since = now - timedelta(days=7)
        elif period == "monthly":
            since = now - timedelta(days=30)
        else:
            since = now - relativedelta(years=1)

        df = pd.DataFrame(
            [{"date": e.date, "count": e.count} for e in counter.history if e.date >= since])
        if df.empty:
            return []
        df = df.sort_values("date")
        if period == "yearly":
            df["bucket"] = df["date"].dt.to_period("M")
            df["label"] = df["date"].apply(lambda d: f"{d.month}/{d.year}")
        else:
            df["bucket"] = df["date"].dt.normalize()
            df["label"] = df["date"].apply(lambda d: f"{d.month}/{d.day}")
        grouped = df.groupby(["bucket", "label"], sort=True)["count"].sum().reset_index(name="total")
        return [{"date": row.label, "count": int(row.total)} for row in grouped.itertuples()]
