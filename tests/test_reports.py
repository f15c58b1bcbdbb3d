from decimal import Decimal

import pytest


def totals(rows, key):
    return [(row[key], Decimal(str(row["total_amount"]))) for row in rows]


@pytest.fixture
def report(client):
    def _report(name, headers, **params):
        response = client.get(f"/reports/{name}", params=params, headers=headers)
        assert response.status_code == 200, response.text
        return response.json()

    return _report


def test_register_login_spend_and_summarize(client):
    registered = client.post(
        "/api/register",
        json={"username": "alice", "email": "a@x.com", "password": "pw123"},
    )
    assert registered.status_code == 201
    headers = {"Authorization": registered.json()["token"]}

    bad_login = client.post("/api/login", json={"username": "alice", "password": "wrongpw"})
    assert bad_login.status_code == 400

    created = client.post(
        "/expenses",
        json={"amount": 10, "description": "bus", "category": "transport"},
        headers=headers,
    )
    assert created.status_code == 201

    summary = client.get("/reports/category-summary", headers=headers).json()
    assert totals(summary, "category") == [("transport", Decimal("10"))]


class TestCategorySummary:
    def test_largest_total_first(self, alice, add_expense, report):
        add_expense(alice, 5, "food")
        add_expense(alice, 20, "rent")
        add_expense(alice, 7, "food")
        rows = report("category-summary", alice)
        assert totals(rows, "category") == [("rent", Decimal("20")), ("food", Decimal("12"))]

    def test_month_filter_needs_both_parts(self, alice, add_expense, report):
        add_expense(alice, 5, "food", created_at="2024-03-05T10:00:00")
        add_expense(alice, 8, "food", created_at="2024-04-05T10:00:00")
        assert totals(report("category-summary", alice, month=3, year=2024), "category") == [
            ("food", Decimal("5"))
        ]
        assert totals(report("category-summary", alice, month=3), "category") == [
            ("food", Decimal("13"))
        ]

    def test_scoped_to_caller(self, alice, bob, add_expense, report):
        add_expense(alice, 5, "food")
        assert report("category-summary", bob) == []


class TestCalendarSummaries:
    def test_monthly_summary_by_day_of_month(self, alice, add_expense, report):
        add_expense(alice, 4, "food", created_at="2024-03-20T10:00:00")
        add_expense(alice, 1, "food", created_at="2024-03-02T08:00:00")
        add_expense(alice, 2, "bus", created_at="2024-03-02T21:00:00")
        add_expense(alice, 9, "food", created_at="2024-04-02T08:00:00")
        rows = report("monthly-summary", alice, month=3, year=2024)
        assert totals(rows, "day") == [(2, Decimal("3")), (20, Decimal("4"))]

    def test_monthly_summary_requires_month_and_year(self, client, alice):
        response = client.get("/reports/monthly-summary", params={"year": 2024}, headers=alice)
        assert response.status_code == 400

    def test_yearly_summary_by_month(self, alice, add_expense, report):
        add_expense(alice, 3, "food", created_at="2024-11-01T00:00:00")
        add_expense(alice, 1, "food", created_at="2024-01-31T23:59:59")
        add_expense(alice, 2, "food", created_at="2024-01-15T12:00:00")
        add_expense(alice, 50, "food", created_at="2023-12-31T12:00:00")
        rows = report("yearly-summary", alice, year=2024)
        assert totals(rows, "month") == [(1, Decimal("3")), (11, Decimal("3"))]

    def test_yearly_category_summary(self, alice, add_expense, report):
        add_expense(alice, 3, "food", created_at="2024-02-01T00:00:00")
        add_expense(alice, 9, "rent", created_at="2024-06-01T00:00:00")
        add_expense(alice, 100, "rent", created_at="2025-01-01T00:00:00")
        rows = report("yearly-category-summary", alice, year=2024)
        assert totals(rows, "category") == [("rent", Decimal("9")), ("food", Decimal("3"))]

    def test_empty_year(self, alice, report):
        assert report("yearly-summary", alice, year=1999) == []


class TestWeeklySummaries:
    def test_weekly_summary_by_calendar_day(self, alice, add_expense, report):
        add_expense(alice, 1, "food", created_at="2024-01-01T08:00:00")
        add_expense(alice, 2, "food", created_at="2024-01-01T20:00:00")
        add_expense(alice, 4, "food", created_at="2024-01-05T12:00:00")
        add_expense(alice, 8, "food", created_at="2024-01-09T12:00:00")
        rows = report(
            "weekly-summary",
            alice,
            startDate="2024-01-01T00:00:00",
            endDate="2024-01-07T23:59:59",
        )
        assert totals(rows, "day") == [("2024-01-01", Decimal("3")), ("2024-01-05", Decimal("4"))]

    def test_weekly_window_compares_timestamps(self, alice, add_expense, report):
        add_expense(alice, 1, "food", created_at="2024-01-07T00:00:00")
        add_expense(alice, 2, "food", created_at="2024-01-07T12:00:00")
        rows = report("weekly-summary", alice, startDate="2024-01-01", endDate="2024-01-07")
        assert totals(rows, "day") == [("2024-01-07", Decimal("1"))]

    def test_weekly_category_summary(self, alice, add_expense, report):
        add_expense(alice, 1, "food", created_at="2024-01-02T08:00:00")
        add_expense(alice, 6, "rent", created_at="2024-01-03T08:00:00")
        add_expense(alice, 2, "food", created_at="2024-01-04T08:00:00")
        add_expense(alice, 50, "food", created_at="2024-01-20T08:00:00")
        rows = report(
            "weekly-category-summary",
            alice,
            startDate="2024-01-01T00:00:00",
            endDate="2024-01-07T23:59:59",
        )
        assert totals(rows, "category") == [("rent", Decimal("6")), ("food", Decimal("3"))]


class TestRangeSummaries:
    def test_range_daily_summary_ignores_time_of_day(self, alice, add_expense, report):
        add_expense(alice, 1, "food", created_at="2024-01-01T00:00:00")
        add_expense(alice, 2, "food", created_at="2024-01-02T13:45:00")
        add_expense(alice, 3, "food", created_at="2024-01-03T23:59:59")
        add_expense(alice, 4, "food", created_at="2024-01-03T06:00:00")
        add_expense(alice, 99, "food", created_at="2024-01-04T00:00:00")
        rows = report("range-daily-summary", alice, startDate="2024-01-01", endDate="2024-01-03")
        assert totals(rows, "day") == [
            ("2024-01-01", Decimal("1")),
            ("2024-01-02", Decimal("2")),
            ("2024-01-03", Decimal("7")),
        ]

    def test_range_category_summary(self, alice, add_expense, report):
        add_expense(alice, "2.50", "food", created_at="2024-01-01T09:00:00")
        add_expense(alice, "0.75", "food", created_at="2024-01-03T22:00:00")
        add_expense(alice, 1, "bus", created_at="2024-01-02T09:00:00")
        add_expense(alice, 40, "rent", created_at="2023-12-31T23:59:59")
        rows = report("range-category-summary", alice, startDate="2024-01-01", endDate="2024-01-03")
        assert totals(rows, "category") == [("food", Decimal("3.25")), ("bus", Decimal("1"))]

    def test_range_requires_dates(self, client, alice):
        response = client.get("/reports/range-daily-summary", headers=alice)
        assert response.status_code == 400


def test_weekly_window_accepts_offsets(alice, add_expense, report):
    add_expense(alice, 1, "food", created_at="2023-12-31T23:30:00")
    add_expense(alice, 2, "food", created_at="2024-01-01T00:30:00")
    add_expense(alice, 4, "rent", created_at="2024-01-07T23:00:00")
    add_expense(alice, 8, "rent", created_at="2024-01-08T00:30:00")
    window = {"startDate": "2024-01-01T02:00:00+02:00", "endDate": "2024-01-08T01:59:59+02:00"}

    daily = report("weekly-summary", alice, **window)
    assert totals(daily, "day") == [("2024-01-01", Decimal("2")), ("2024-01-07", Decimal("4"))]

    by_category = report("weekly-category-summary", alice, **window)
    assert totals(by_category, "category") == [("rent", Decimal("4")), ("food", Decimal("2"))]
