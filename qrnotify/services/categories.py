"""
Notification category table.

Every alert a passer-by can pick on the QR page has a fixed numeric id and
a severity. Critical categories draw from a separate, smaller budget in the
rate limiter.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    NORMAL = "normal"
    CRITICAL = "critical"


@dataclass(frozen=True)
class NotificationCategory:
    id: int
    key: str
    severity: Severity

    @property
    def critical(self) -> bool:
        return self.severity is Severity.CRITICAL


CATEGORIES: dict[int, NotificationCategory] = {
    c.id: c
    for c in (
        NotificationCategory(1, "blocking", Severity.NORMAL),
        NotificationCategory(2, "wrongParking", Severity.NORMAL),
        NotificationCategory(3, "alarm", Severity.NORMAL),
        NotificationCategory(4, "evacuation", Severity.CRITICAL),
        NotificationCategory(5, "minorAccident", Severity.NORMAL),
        NotificationCategory(6, "seriousAccident", Severity.CRITICAL),
    )
}


def get_category(category_id: int) -> NotificationCategory | None:
    """Look up one category; None for ids the QR page does not offer."""
    return CATEGORIES.get(category_id)


def classify(category_ids: Iterable[int]) -> list[NotificationCategory]:
    """
    Map raw ids onto known categories.

    Unknown ids are dropped: they are never delivered, so they carry no
    budget cost either.
    """
    known: list[NotificationCategory] = []
    for category_id in category_ids:
        category = get_category(category_id)
        if category is not None:
            known.append(category)
    return known
