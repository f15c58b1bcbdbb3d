from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, status
from sqlalchemy.orm import Session

from . import auth, crud, reports, schemas
from .config import Settings, get_settings
from .database import Base, build_engine, build_session_factory, get_db
from .errors import InvalidCredentials, ValidationError, register_error_handlers
from .log import configure_logging, get_logger

logger = get_logger(__name__)

router = APIRouter()

MonthParam = Annotated[Optional[int], Query(ge=1, le=12)]
YearParam = Annotated[Optional[int], Query(ge=1, le=9999)]


def _auth_response(user, message: str, settings: Settings) -> dict:
    token = auth.create_access_token(user.id, settings)
    return {"message": message, "token": token, "user": user}


# Authentication
@router.post("/api/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user: schemas.UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(auth.get_app_settings),
):
    hashed_password = auth.get_password_hash(user.password, rounds=settings.bcrypt_rounds)
    db_user = crud.create_user(db=db, user=user, hashed_password=hashed_password)
    logger.info("user_registered", user_id=db_user.id)
    return _auth_response(db_user, "User registered successfully", settings)


@router.post("/api/login", response_model=schemas.AuthResponse)
def login(
    credentials: schemas.UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(auth.get_app_settings),
):
    user = crud.get_user_by_username(db, username=credentials.username)
    if not user or not auth.verify_password(credentials.password, user.password_hash):
        raise InvalidCredentials("Invalid username or password")
    return _auth_response(user, "Logged in successfully", settings)


# Expenses
@router.post("/expenses", response_model=schemas.Expense, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense: schemas.ExpenseCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return crud.create_expense(db=db, expense=expense, user_id=user_id)


@router.get("/expenses", response_model=List[schemas.Expense])
def read_expenses(
    month: MonthParam = None,
    year: YearParam = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return crud.get_expenses(db, user_id=user_id, month=month, year=year)


@router.get("/expenses/range", response_model=List[schemas.Expense])
def read_expenses_in_range(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return crud.get_expenses_in_range(db, user_id=user_id, start_date=start_date, end_date=end_date)


@router.get("/expenses/{expense_id}", response_model=schemas.Expense)
def read_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return crud.get_expense(db, expense_id=expense_id, user_id=user_id)


@router.put("/expenses/{expense_id}", response_model=schemas.Expense)
def update_expense(
    expense_id: int,
    expense: schemas.ExpenseUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return crud.update_expense(db=db, expense_id=expense_id, expense=expense, user_id=user_id)


@router.delete("/expenses/{expense_id}", response_model=schemas.Message)
def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    crud.delete_expense(db=db, expense_id=expense_id, user_id=user_id)
    return {"message": "Expense deleted successfully"}


# Reports
@router.get("/reports/category-summary", response_model=List[schemas.CategoryTotal])
def get_category_summary(
    month: MonthParam = None,
    year: YearParam = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return reports.category_summary(db, user_id=user_id, month=month, year=year)


@router.get("/reports/monthly-summary", response_model=List[schemas.DayOfMonthTotal])
def get_monthly_summary(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=1, le=9999),
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return reports.monthly_summary(db, user_id=user_id, month=month, year=year)


@router.get("/reports/weekly-category-summary", response_model=List[schemas.CategoryTotal])
def get_weekly_category_summary(
    start: datetime = Query(..., alias="startDate"),
    end: datetime = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return reports.weekly_category_summary(
        db, user_id=user_id, start=schemas.as_utc(start), end=schemas.as_utc(end)
    )


@router.get("/reports/yearly-category-summary", response_model=List[schemas.CategoryTotal])
def get_yearly_category_summary(
    year: int = Query(..., ge=1, le=9999),
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return reports.yearly_category_summary(db, user_id=user_id, year=year)


@router.get("/reports/yearly-summary", response_model=List[schemas.MonthTotal])
def get_yearly_summary(
    year: int = Query(..., ge=1, le=9999),
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return reports.yearly_summary(db, user_id=user_id, year=year)


@router.get("/reports/weekly-summary", response_model=List[schemas.DailyTotal])
def get_weekly_summary(
    start: datetime = Query(..., alias="startDate"),
    end: datetime = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return reports.weekly_summary(db, user_id=user_id, start=schemas.as_utc(start), end=schemas.as_utc(end))


@router.get("/reports/range-category-summary", response_model=List[schemas.CategoryTotal])
def get_range_category_summary(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return reports.range_category_summary(db, user_id=user_id, start_date=start_date, end_date=end_date)


@router.get("/reports/range-daily-summary", response_model=List[schemas.DailyTotal])
def get_range_daily_summary(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return reports.range_daily_summary(db, user_id=user_id, start_date=start_date, end_date=end_date)


# Categories
@router.get("/categories", response_model=List[str])
def read_categories(
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    return crud.get_categories(db, user_id=user_id)


@router.post("/categories", response_model=schemas.CategoryName, status_code=status.HTTP_201_CREATED)
def create_category(
    category: Optional[schemas.CategoryName] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    if category is None or not category.name:
        raise ValidationError("Category name is required")
    db_category = crud.create_category(db=db, name=category.name, user_id=user_id)
    return {"name": db_category.name}


@router.delete("/categories", response_model=schemas.Message)
def delete_category(
    category: Optional[schemas.CategoryName] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(auth.get_current_user_id),
):
    if category is None or not category.name:
        raise ValidationError("Category name is required")
    crud.delete_category(db=db, name=category.name, user_id=user_id)
    return {"message": "Category deleted successfully"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("startup", database=app.state.engine.url.render_as_string(hide_password=True))
    yield
    # uvicorn has already drained in-flight requests at this point
    app.state.engine.dispose()
    logger.info("database_pool_closed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    engine = build_engine(settings)
    Base.metadata.create_all(bind=engine)

    app = FastAPI(title="Expense Tracker API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    register_error_handlers(app)
    app.include_router(router)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=settings.shutdown_timeout,
    )


if __name__ == "__main__":
    run()
