"""Tests for the notification category table."""

from qrnotify.services.categories import CATEGORIES, Severity, classify, get_category


def test_critical_categories():
    critical = {c.key for c in CATEGORIES.values() if c.critical}
    assert critical == {"evacuation", "seriousAccident"}


def test_get_category():
    assert get_category(4).severity is Severity.CRITICAL
    assert get_category(1).key == "blocking"
    assert get_category(42) is None


def test_classify_drops_unknown_and_keeps_order():
    result = classify([6, 0, 2, 99, 2])
    assert [c.key for c in result] == ["seriousAccident", "wrongParking", "wrongParking"]
