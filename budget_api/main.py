import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud, models, schemas, summary
from .auth import get_current_user, get_verifier
from .categories import resolve_categories
from .config import get_settings
from .database import engine, get_db

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # fail fast on missing identity provider configuration
    get_verifier()
    models.Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Budget Buddy API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        if first.get("type") == "json_invalid":
            detail = "Malformed JSON body"
        elif first.get("type") == "missing":
            detail = f"Missing required field: {field}" if field else "Missing required fields"
        elif field:
            detail = f"Invalid value for {field}: {first.get('msg')}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def _month_range(year: int, month: int):
    try:
        summary.validate_month(year, month)
        start = datetime(year, month, 1)
        end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return start, end


def _resolve_category(db: Session, transaction: schemas.TransactionCreate, user_id: str):
    if crud.get_account(db, transaction.account_id, user_id) is None:
        raise HTTPException(status_code=404, detail="Account not found")
    resolved = crud.resolve_transaction_category(db, transaction, user_id)
    if resolved is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return resolved


# System
@app.get("/health", response_model=schemas.Health)
def health_check():
    return {"status": "ok"}


# Users
@app.post("/auth/sync", response_model=schemas.User)
def sync_user(
    payload: Optional[schemas.UserSync] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    # a bodiless sync only ensures the user row exists
    return crud.sync_user(db, current_user, payload or schemas.UserSync())


@app.get("/user/profile", response_model=schemas.User)
def read_profile(current_user: models.User = Depends(get_current_user)):
    return current_user


@app.put("/user/profile", response_model=schemas.User)
def update_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud.update_profile(db, current_user, payload)


# Accounts
@app.post("/accounts", response_model=schemas.Account)
def create_account(
    account: schemas.AccountCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud.create_account(db=db, account=account, user_id=current_user.id)


@app.get("/accounts", response_model=List[schemas.Account])
def read_accounts(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud.get_accounts(db, user_id=current_user.id)


@app.post("/accounts/default", response_model=schemas.Account)
def ensure_default_account(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud.ensure_default_account(db, user_id=current_user.id)


# Transactions
@app.post("/transactions", response_model=schemas.Transaction)
def create_transaction(
    transaction: schemas.TransactionCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    category_id, static_category = _resolve_category(db, transaction, current_user.id)
    return crud.create_transaction(
        db=db,
        transaction=transaction,
        user_id=current_user.id,
        category_id=category_id,
        static_category=static_category,
    )


@app.get("/transactions", response_model=List[schemas.Transaction])
def read_transactions(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return crud.get_transactions(db, user_id=current_user.id)


@app.get("/transactions/{transaction_id}", response_model=schemas.Transaction)
def read_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    db_transaction = crud.get_transaction(db, transaction_id=transaction_id, user_id=current_user.id)
    if db_transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return db_transaction


@app.put("/transactions/{transaction_id}", response_model=schemas.Transaction)
def update_transaction(
    transaction_id: int,
    transaction: schemas.TransactionCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    db_transaction = crud.get_transaction(db, transaction_id=transaction_id, user_id=current_user.id)
    if db_transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    category_id, static_category = _resolve_category(db, transaction, current_user.id)
    return crud.update_transaction(
        db=db,
        db_transaction=db_transaction,
        transaction=transaction,
        category_id=category_id,
        static_category=static_category,
    )


@app.delete("/transactions/{transaction_id}", response_model=schemas.Message)
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    db_transaction = crud.get_transaction(db, transaction_id=transaction_id, user_id=current_user.id)
    if db_transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    crud.delete_transaction(db, db_transaction)
    return {"message": "Transaction deleted"}


# Categories
@app.get("/categories", response_model=List[schemas.Category])
def read_categories(
    type: Literal["income", "expense"] = Query("expense"),
    include_static: bool = Query(False, alias="includeStatic"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return resolve_categories(
        crud.get_categories(db, user_id=current_user.id),
        crud.get_transactions(db, user_id=current_user.id),
        active_type=type,
        include_static=include_static,
    )


@app.post("/categories", response_model=schemas.Category)
def create_category(
    category: schemas.CategoryCreate,
    type: Literal["income", "expense"] = Query("expense"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    if crud.category_name_taken(db, category.name, current_user.id):
        raise HTTPException(status_code=409, detail="Category already exists")
    db_category = crud.create_category(db=db, category=category, user_id=current_user.id)
    return resolve_categories([db_category], [], active_type=type)[0]


@app.put("/categories/{category_id}", response_model=schemas.Category)
def update_category(
    category_id: int,
    category: schemas.CategoryUpdate,
    type: Literal["income", "expense"] = Query("expense"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    db_category = crud.get_category(db, category_id=category_id, user_id=current_user.id)
    if db_category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    if crud.category_name_taken(db, category.name, current_user.id, exclude_id=category_id):
        raise HTTPException(status_code=409, detail="Category already exists")
    db_category = crud.update_category(db, db_category, category)
    transactions = crud.get_transactions(db, user_id=current_user.id)
    return resolve_categories([db_category], transactions, active_type=type)[0]


@app.delete("/categories/{category_id}", response_model=schemas.Message)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    db_category = crud.get_category(db, category_id=category_id, user_id=current_user.id)
    if db_category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    if crud.count_category_usage(db, category_id) > 0:
        raise HTTPException(status_code=409, detail="Category is in use")
    crud.delete_category(db, db_category)
    return {"message": "Category deleted"}


# Summaries
@app.get("/summary/balance", response_model=schemas.BalanceSummary)
def balance_summary(
    year: Optional[int] = None,
    month: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    if (year is None) != (month is None):
        raise HTTPException(status_code=400, detail="year and month must be given together")
    start = end = None
    if year is not None:
        start, end = _month_range(year, month)
    transactions = crud.get_transactions(db, user_id=current_user.id, start=start, end=end)
    return summary.balance_summary(transactions, year=year, month=month)


@app.get("/summary/categories", response_model=List[schemas.CategoryTotal])
def category_summary(
    year: int,
    month: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    start, end = _month_range(year, month)
    transactions = crud.get_transactions(db, user_id=current_user.id, start=start, end=end)
    return summary.category_breakdown(transactions, year, month)


@app.get("/summary/daily", response_model=List[schemas.DailyTotal])
def daily_summary(
    year: int,
    month: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    start, end = _month_range(year, month)
    transactions = crud.get_transactions(db, user_id=current_user.id, start=start, end=end)
    return summary.daily_series(transactions, year, month)
