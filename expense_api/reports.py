"""
Aggregate spending reports.

Every report is a single ``SUM(amount)`` query scoped to one user. Reports
keyed by month or day of month extract calendar parts from the stored UTC
timestamp. The weekly reports compare the raw timestamp against the window
bounds, while the range reports compare the calendar date only, so their end
date covers the whole day.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Integer, cast, extract, func
from sqlalchemy.orm import Session

from . import models
from .crud import expense_date, month_filter
from .errors import storage_errors

Expense = models.Expense


def _total():
    return func.sum(Expense.amount).label("total_amount")


def _date_part(part: str, label: str):
    return cast(extract(part, Expense.created_at), Integer).label(label)


def _by_category(db: Session, user_id: int, criteria, message: str):
    total = _total()
    with storage_errors(db, message, user_id=user_id):
        return (
            db.query(Expense.category.label("category"), total)
            .filter(Expense.user_id == user_id, *criteria)
            .group_by(Expense.category)
            .order_by(total.desc())
            .all()
        )


def _by_key(db: Session, user_id: int, key, criteria, message: str):
    with storage_errors(db, message, user_id=user_id):
        return (
            db.query(key, _total())
            .filter(Expense.user_id == user_id, *criteria)
            .group_by(key)
            .order_by(key.asc())
            .all()
        )


def category_summary(db: Session, user_id: int, month: Optional[int] = None, year: Optional[int] = None):
    return _by_category(db, user_id, month_filter(month, year), "Failed to retrieve report data")


def monthly_summary(db: Session, user_id: int, month: int, year: int):
    return _by_key(
        db,
        user_id,
        _date_part("day", "day"),
        month_filter(month, year),
        "Failed to retrieve monthly summary data",
    )


def weekly_category_summary(db: Session, user_id: int, start: datetime, end: datetime):
    return _by_category(
        db,
        user_id,
        [Expense.created_at.between(start, end)],
        "Failed to retrieve weekly category summary",
    )


def yearly_category_summary(db: Session, user_id: int, year: int):
    return _by_category(
        db,
        user_id,
        [extract("year", Expense.created_at) == year],
        "Failed to retrieve yearly category summary",
    )


def yearly_summary(db: Session, user_id: int, year: int):
    return _by_key(
        db,
        user_id,
        _date_part("month", "month"),
        [extract("year", Expense.created_at) == year],
        "Failed to retrieve yearly summary data",
    )


def weekly_summary(db: Session, user_id: int, start: datetime, end: datetime):
    return _by_key(
        db,
        user_id,
        expense_date().label("day"),
        [Expense.created_at.between(start, end)],
        "Failed to retrieve weekly summary data",
    )


def range_category_summary(db: Session, user_id: int, start_date: date, end_date: date):
    return _by_category(
        db,
        user_id,
        [expense_date().between(start_date, end_date)],
        "Failed to retrieve category summary",
    )


def range_daily_summary(db: Session, user_id: int, start_date: date, end_date: date):
    return _by_key(
        db,
        user_id,
        expense_date().label("day"),
        [expense_date().between(start_date, end_date)],
        "Failed to retrieve daily summary",
    )
