from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import Budget, BudgetPeriod, Transaction, TransactionType, User
from periods import Period, budget_window, local_now, month_period
from schemas import (
    BudgetIn,
    BudgetUpdate,
    RegisterIn,
    TransactionIn,
    TransactionUpdate,
)
from security import hash_password, verify_password

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class NotFoundError(ValueError):
    pass


class ForbiddenError(ValueError):
    pass


class ConflictError(ValueError):
    pass


class UserExistsError(ConflictError):
    pass


class InvalidCredentialsError(ValueError):
    pass


def _money(value: object) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS)


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.strip().lower())
        return self.session.scalar(stmt)

    def register(self, data: RegisterIn) -> User:
        if self.find_by_email(data.email):
            raise UserExistsError("User already exists")
        user = User(
            name=data.name,
            email=data.email.strip().lower(),
            password_hash=hash_password(data.password),
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.find_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError("Invalid credentials")
        return user


class TransactionService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def get(self, transaction_id: int) -> Transaction:
        txn = self.session.get(Transaction, transaction_id)
        if not txn:
            raise NotFoundError("Transaction not found")
        if txn.user_id != self.user_id:
            raise ForbiddenError("User not authorized")
        return txn

    def list(self) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == self.user_id)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )
        return self.session.scalars(stmt).all()

    def list_for_period(self, period: Period) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .where(
                Transaction.user_id == self.user_id,
                Transaction.date.between(period.start, period.end),
            )
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )
        return self.session.scalars(stmt).all()

    def list_by_month(self, month: int, year: int) -> list[Transaction]:
        return self.list_for_period(month_period(year, month))

    def create(self, data: TransactionIn) -> Transaction:
        txn = Transaction(
            user_id=self.user_id,
            amount=data.amount,
            description=data.description,
            category=data.category,
            date=data.date,
            type=data.type,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def update(self, transaction_id: int, data: TransactionUpdate) -> Transaction:
        txn = self.get(transaction_id)
        for field, value in data.model_dump(exclude_none=True).items():
            setattr(txn, field, value)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()


class BudgetService:
    """Budget registry plus the spend reconciliation run on every listing."""

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def get(self, budget_id: int) -> Budget:
        budget = self.session.get(Budget, budget_id)
        if not budget:
            raise NotFoundError("Budget not found")
        if budget.user_id != self.user_id:
            raise ForbiddenError("User not authorized")
        return budget

    def _owned(self) -> list[Budget]:
        stmt = (
            select(Budget).where(Budget.user_id == self.user_id).order_by(Budget.id)
        )
        return self.session.scalars(stmt).all()

    def spent_for(self, budget: Budget, window: Period) -> Decimal:
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.user_id == budget.user_id,
            Transaction.type == TransactionType.expense,
            Transaction.category == budget.category,
            Transaction.date >= window.start,
            Transaction.date <= window.end,
        )
        return _money(self.session.execute(stmt).scalar_one())

    def list(self, now: Optional[datetime] = None) -> list[Budget]:
        """Return the owner's budgets with ``spent`` recomputed for ``now``.

        Each budget's spend is summed over its current window and written
        back before returning. There is no locking: a transaction written
        between the sum and the commit is picked up by the next listing.
        """
        now = now or local_now()
        budgets = self._owned()
        for budget in budgets:
            window = budget_window(budget.period, now)
            budget.spent = self.spent_for(budget, window)
        self.session.commit()
        logger.info(
            f"budgets_reconciled: user_id={self.user_id} count={len(budgets)}"
        )
        return budgets

    def _ensure_unique(
        self,
        category: str,
        period: BudgetPeriod,
        *,
        exclude_id: Optional[int] = None,
    ) -> None:
        stmt = select(Budget.id).where(
            Budget.user_id == self.user_id,
            Budget.category == category,
            Budget.period == period,
        )
        if exclude_id is not None:
            stmt = stmt.where(Budget.id != exclude_id)
        if self.session.scalar(stmt) is not None:
            raise ConflictError(
                f"A budget already exists for {category} ({period.value})"
            )

    def create(self, data: BudgetIn) -> Budget:
        self._ensure_unique(data.category, data.period)
        budget = Budget(
            user_id=self.user_id,
            name=data.name,
            amount=data.amount,
            category=data.category,
            period=data.period,
            spent=Decimal("0"),
        )
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def update(self, budget_id: int, data: BudgetUpdate) -> Budget:
        budget = self.get(budget_id)
        category = data.category if data.category is not None else budget.category
        period = data.period if data.period is not None else budget.period
        if category != budget.category or period != budget.period:
            self._ensure_unique(category, period, exclude_id=budget.id)

        for field, value in data.model_dump(exclude_none=True).items():
            setattr(budget, field, value)
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def delete(self, budget_id: int) -> None:
        budget = self.get(budget_id)
        self.session.delete(budget)
        self.session.commit()
