from datetime import date
from typing import Optional

from sqlalchemy import Date, extract, func
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import ConflictError, NotFound, storage_errors


def expense_date(column=models.Expense.created_at):
    """Calendar date of a stored timestamp; date() exists on SQLite and PostgreSQL."""
    return func.date(column, type_=Date)


def month_filter(month: Optional[int], year: Optional[int]):
    """Calendar month criteria, only when both parts are given."""
    if month is None or year is None:
        return []
    return [
        extract("month", models.Expense.created_at) == month,
        extract("year", models.Expense.created_at) == year,
    ]


# Users
def get_user_by_username(db: Session, username: str):
    with storage_errors(db, "Server error during login"):
        return db.query(models.User).filter(models.User.username == username).first()


def create_user(db: Session, user: schemas.UserCreate, hashed_password: str):
    conflict = ConflictError("Username or email already exists", status_code=400)
    with storage_errors(db, "Server error during registration", conflict=conflict):
        db_user = models.User(username=user.username, email=user.email, password_hash=hashed_password)
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    return db_user


# Expenses
def create_expense(db: Session, expense: schemas.ExpenseCreate, user_id: int):
    values = expense.model_dump()
    if values["created_at"] is None:
        del values["created_at"]
    with storage_errors(db, "Failed to add expense", user_id=user_id):
        db_expense = models.Expense(**values, user_id=user_id)
        db.add(db_expense)
        db.commit()
        db.refresh(db_expense)
    return db_expense


def get_expenses(db: Session, user_id: int, month: Optional[int] = None, year: Optional[int] = None):
    with storage_errors(db, "Failed to retrieve expenses", user_id=user_id):
        return (
            db.query(models.Expense)
            .filter(models.Expense.user_id == user_id, *month_filter(month, year))
            .order_by(models.Expense.created_at.desc())
            .all()
        )


def get_expenses_in_range(db: Session, user_id: int, start_date: date, end_date: date):
    with storage_errors(db, "Failed to retrieve expenses for the date range", user_id=user_id):
        return (
            db.query(models.Expense)
            .filter(models.Expense.user_id == user_id)
            .filter(expense_date().between(start_date, end_date))
            .order_by(models.Expense.created_at.desc())
            .all()
        )


def get_expense(db: Session, expense_id: int, user_id: int):
    with storage_errors(db, "Failed to retrieve expense", user_id=user_id):
        db_expense = (
            db.query(models.Expense)
            .filter(models.Expense.id == expense_id, models.Expense.user_id == user_id)
            .first()
        )
    if db_expense is None:
        raise NotFound("Expense not found or not authorized")
    return db_expense


def update_expense(db: Session, expense_id: int, expense: schemas.ExpenseUpdate, user_id: int):
    with storage_errors(db, "Failed to update expense", user_id=user_id, expense_id=expense_id):
        db_expense = (
            db.query(models.Expense)
            .filter(models.Expense.id == expense_id, models.Expense.user_id == user_id)
            .with_for_update()
            .first()
        )
        if db_expense is None:
            db.rollback()
            raise NotFound("Expense not found or you do not have permission to edit it.")
        for key, value in expense.model_dump().items():
            setattr(db_expense, key, value)
        db.commit()
        db.refresh(db_expense)
    return db_expense


def delete_expense(db: Session, expense_id: int, user_id: int):
    with storage_errors(db, "Failed to delete expense", user_id=user_id, expense_id=expense_id):
        deleted = (
            db.query(models.Expense)
            .filter(models.Expense.id == expense_id, models.Expense.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    if not deleted:
        raise NotFound("Expense not found or not authorized")


# Categories
def get_categories(db: Session, user_id: int):
    with storage_errors(db, "Failed to retrieve categories", user_id=user_id):
        rows = (
            db.query(models.Category.name)
            .filter(models.Category.user_id == user_id)
            .order_by(models.Category.name.asc())
            .all()
        )
    return [row.name for row in rows]


def create_category(db: Session, name: str, user_id: int):
    conflict = ConflictError("Category already exists")
    with storage_errors(db, "Failed to add category", conflict=conflict, user_id=user_id):
        db_category = models.Category(name=name, user_id=user_id)
        db.add(db_category)
        db.commit()
        db.refresh(db_category)
    return db_category


def delete_category(db: Session, name: str, user_id: int):
    with storage_errors(db, "Failed to delete category", user_id=user_id):
        deleted = (
            db.query(models.Category)
            .filter(models.Category.name == name, models.Category.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    if not deleted:
        raise NotFound("Category not found or you do not have permission to delete it.")
