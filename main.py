import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings
from database import SessionLocal, wait_for_database
from schemas import (
    FIELD_MESSAGES,
    AuthOut,
    BudgetIn,
    BudgetOut,
    BudgetUpdate,
    LoginIn,
    MessageOut,
    RegisterIn,
    TransactionIn,
    TransactionOut,
    TransactionUpdate,
    UserOut,
)
from security import AuthError, ExpiredTokenError, issue_token, verify_token
from services import (
    BudgetService,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    TransactionService,
    UserExistsError,
    UserService,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title="Finance Tracker")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

bearer_scheme = HTTPBearer(auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup_event():
    wait_for_database()


@dataclass(frozen=True)
class AuthenticatedUser:
    id: int
    name: str
    email: str


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthenticatedUser:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authorized, no token")
    try:
        user_id = verify_token(credentials.credentials)
    except ExpiredTokenError as exc:
        raise HTTPException(
            status_code=401, detail="Not authorized, token expired"
        ) from exc
    except AuthError as exc:
        raise HTTPException(status_code=401, detail="Not authorized, token failed") from exc
    try:
        user = UserService(db).get(user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=401, detail="Not authorized, user not found") from exc
    return AuthenticatedUser(id=user.id, name=user.name, email=user.email)


def _field_name(loc: tuple) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        field = _field_name(tuple(err.get("loc", ())))
        if err.get("type") == "missing":
            message = f"{field.capitalize()} is required"
        elif err.get("type") == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = FIELD_MESSAGES.get(field, err.get("msg", "Invalid value"))
        errors.append({"field": field, "message": message, "type": err.get("type")})
    return JSONResponse(status_code=400, content={"errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"unhandled_error: path={request.url.path}")
    content = {"message": "Something went wrong!"}
    if get_settings().is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


api = APIRouter(prefix="/api")


@api.get("/health")
def health():
    return {"status": "ok"}


@api.post("/auth/register", response_model=AuthOut, status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    try:
        user = UserService(db).register(payload)
    except UserExistsError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info(f"user_registered: user_id={user.id}")
    return AuthOut(token=issue_token(user.id), user=UserOut.model_validate(user))


@api.post("/auth/login", response_model=AuthOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    try:
        user = UserService(db).authenticate(payload.email, payload.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return AuthOut(token=issue_token(user.id), user=UserOut.model_validate(user))


@api.get("/auth/me", response_model=UserOut)
def me(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = UserService(db).get(current_user.id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return user


def _owned_error(exc: ValueError) -> HTTPException:
    if isinstance(exc, ForbiddenError):
        return HTTPException(status_code=401, detail=str(exc))
    return HTTPException(status_code=404, detail=str(exc))


def _parse_body(model: type[BaseModel], payload: Optional[dict[str, Any]]):
    # Partial updates are validated after the ownership check.
    try:
        return model.model_validate(payload or {})
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


@api.get("/transactions", response_model=list[TransactionOut])
def list_transactions(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TransactionService(db, current_user.id).list()


@api.get("/transactions/monthly", response_model=list[TransactionOut])
def list_transactions_by_month(
    month: Optional[str] = None,
    year: Optional[str] = None,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # Blank query values count as missing.
    if not month or not year:
        raise HTTPException(status_code=400, detail="Month and year are required")
    try:
        month_num, year_num = int(month), int(year)
    except ValueError as exc:
        raise HTTPException(
            status_code=400, detail="Month and year must be whole numbers"
        ) from exc
    try:
        return TransactionService(db, current_user.id).list_by_month(month_num, year_num)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@api.post("/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: TransactionIn,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    txn = TransactionService(db, current_user.id).create(payload)
    logger.info(
        f"transaction_created: user_id={current_user.id} id={txn.id} "
        f"type={txn.type.value} category={txn.category!r}"
    )
    return txn


@api.put("/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    payload: Optional[dict[str, Any]] = Body(None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = TransactionService(db, current_user.id)
    try:
        service.get(transaction_id)
    except (NotFoundError, ForbiddenError) as exc:
        raise _owned_error(exc) from exc
    data = _parse_body(TransactionUpdate, payload)
    return service.update(transaction_id, data)


@api.delete("/transactions/{transaction_id}", response_model=MessageOut)
def delete_transaction(
    transaction_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        TransactionService(db, current_user.id).delete(transaction_id)
    except (NotFoundError, ForbiddenError) as exc:
        raise _owned_error(exc) from exc
    return MessageOut(message="Transaction removed")


@api.get("/budgets", response_model=list[BudgetOut])
def list_budgets(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return BudgetService(db, current_user.id).list()


@api.post("/budgets", response_model=BudgetOut, status_code=201)
def create_budget(
    payload: BudgetIn,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        budget = BudgetService(db, current_user.id).create(payload)
    except ConflictError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info(
        f"budget_created: user_id={current_user.id} id={budget.id} "
        f"category={budget.category!r} period={budget.period.value}"
    )
    return budget


@api.put("/budgets/{budget_id}", response_model=BudgetOut)
def update_budget(
    budget_id: int,
    payload: Optional[dict[str, Any]] = Body(None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = BudgetService(db, current_user.id)
    try:
        service.get(budget_id)
    except (NotFoundError, ForbiddenError) as exc:
        raise _owned_error(exc) from exc
    data = _parse_body(BudgetUpdate, payload)
    try:
        return service.update(budget_id, data)
    except ConflictError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@api.delete("/budgets/{budget_id}", response_model=MessageOut)
def delete_budget(
    budget_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        BudgetService(db, current_user.id).delete(budget_id)
    except (NotFoundError, ForbiddenError) as exc:
        raise _owned_error(exc) from exc
    return MessageOut(message="Budget removed")


app.include_router(api)
