"""Tests for loan amortization planning and the payment ledger."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from hris_payroll.exceptions import LedgerInconsistencyError, NotFoundError, ValidationError
from hris_payroll.models import Deduction
from hris_payroll.services.deduction_ledger import (
    DeductionLedger,
    LoanStatus,
    add_months,
    loan_status,
    next_deduction_date,
    plan_payment,
    plan_period_deductions,
)


def _loan(**overrides) -> Deduction:
    values = {
        "deduction_id": 1,
        "employee_id": "E001",
        "deduction_type_id": 1,
        "principal_amount": Decimal("5000"),
        "remaining_balance": Decimal("5000"),
        "installment_amount": Decimal("1000"),
        "installments_total": 5,
        "installments_paid": 0,
        "payment_frequency": "semi-monthly",
        "start_date": date(2025, 3, 1),
        "end_date": date(2025, 8, 1),
        "next_deduction_date": date(2025, 3, 15),
        "auto_deduct": True,
        "is_active": True,
    }
    values.update(overrides)
    return Deduction(**values)


class TestSchedule:
    """Test due-date cadence per payment frequency."""

    def test_add_months_clamps_day(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)

    def test_semi_monthly_alternates(self):
        assert next_deduction_date(date(2025, 3, 1), "semi-monthly") == date(2025, 3, 15)
        assert next_deduction_date(date(2025, 3, 15), "semi-monthly") == date(2025, 3, 31)
        assert next_deduction_date(date(2025, 3, 31), "semi-monthly") == date(2025, 4, 15)
        assert next_deduction_date(date(2025, 2, 15), "semi-monthly") == date(2025, 2, 28)

    def test_other_frequencies(self):
        assert next_deduction_date(date(2025, 3, 1), "weekly") == date(2025, 3, 8)
        assert next_deduction_date(date(2025, 3, 1), "bi-weekly") == date(2025, 3, 15)
        assert next_deduction_date(date(2025, 1, 31), "monthly") == date(2025, 2, 28)

    def test_unknown_frequency(self):
        with pytest.raises(ValueError):
            next_deduction_date(date(2025, 3, 1), "daily")

    def test_status(self):
        today = date(2025, 4, 1)
        assert loan_status(_loan(), today) is LoanStatus.ACTIVE
        assert loan_status(_loan(remaining_balance=Decimal("0")), today) is LoanStatus.PAID
        assert loan_status(_loan(is_active=False), today) is LoanStatus.INACTIVE
        assert loan_status(_loan(start_date=date(2025, 5, 1)), today) is LoanStatus.PENDING
        assert loan_status(_loan(end_date=date(2025, 3, 31)), today) is LoanStatus.EXPIRED


class TestPlanning:
    def test_regular_installment(self):
        line = plan_payment(_loan(), Decimal("1000"))

        assert line.balance_before == Decimal("5000")
        assert line.balance_after == Decimal("4000")
        assert line.next_deduction_date == date(2025, 3, 31)
        assert not line.deactivates

    def test_last_installment_capped_at_balance(self):
        loan = _loan(remaining_balance=Decimal("300"), installments_paid=4)

        lines = plan_period_deductions([loan], date(2025, 3, 15))

        assert lines[0].amount == Decimal("300")
        assert lines[0].balance_after == 0
        assert lines[0].deactivates
        assert lines[0].next_deduction_date is None

    def test_exhausted_installments_deactivate(self):
        loan = _loan(remaining_balance=Decimal("1500"), installments_paid=4)

        line = plan_payment(loan, Decimal("1000"))

        assert line.balance_after == Decimal("500")
        assert line.deactivates

    def test_not_yet_due_is_skipped(self):
        loan = _loan(next_deduction_date=date(2025, 3, 31))
        assert plan_period_deductions([loan], date(2025, 3, 15)) == []

    def test_manual_only_loan_is_skipped(self):
        assert plan_period_deductions([_loan(auto_deduct=False)], date(2025, 3, 15)) == []

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("5000.01")])
    def test_invalid_amounts(self, amount):
        with pytest.raises(LedgerInconsistencyError) as exc_info:
            plan_payment(_loan(), amount)
        assert exc_info.value.deduction_id == 1

    def test_no_installments_left(self):
        with pytest.raises(LedgerInconsistencyError):
            plan_payment(_loan(installments_paid=5), Decimal("100"))


class TestDeductionLedger:
    async def test_create_loan_derives_schedule(self, session, test_employees, salary_loan_type):
        loan = await DeductionLedger(session).create_loan(
            employee_id="E001",
            deduction_type_id=salary_loan_type.deduction_type_id,
            principal_amount=Decimal("5500"),
            installment_amount=Decimal("1000"),
            start_date=date(2025, 3, 15),
        )

        assert loan.deduction_id is not None
        assert loan.installments_total == 6
        assert loan.end_date == date(2025, 9, 15)
        assert loan.remaining_balance == Decimal("5500.00")
        assert loan.next_deduction_date == date(2025, 3, 15)

    async def test_manual_payments_until_paid(self, session, test_employees, salary_loan_type):
        ledger = DeductionLedger(session)
        loan = await ledger.create_loan(
            employee_id="E001",
            deduction_type_id=salary_loan_type.deduction_type_id,
            principal_amount=Decimal("1500"),
            installment_amount=Decimal("1000"),
            start_date=date(2025, 3, 1),
            payment_frequency="monthly",
        )

        await ledger.record_manual_payment(loan.deduction_id, Decimal("1000"), date(2025, 3, 1))
        final = await ledger.record_manual_payment(
            loan.deduction_id, Decimal("500"), date(2025, 4, 1)
        )

        assert final.remaining_balance_after == 0
        assert loan.remaining_balance == 0
        assert loan.installments_paid == 2
        assert loan.is_active is False

        history = await ledger.payment_history(loan.deduction_id)
        assert [p.amount_paid for p in history] == [Decimal("500"), Decimal("1000")]

        with pytest.raises(LedgerInconsistencyError):
            await ledger.record_manual_payment(loan.deduction_id, Decimal("1"), date(2025, 5, 1))

    async def test_overpayment_rejected(self, session, test_employees, salary_loan_type):
        ledger = DeductionLedger(session)
        loan = await ledger.create_loan(
            employee_id="E001",
            deduction_type_id=salary_loan_type.deduction_type_id,
            principal_amount=Decimal("1000"),
            installment_amount=Decimal("500"),
            start_date=date(2025, 3, 1),
        )

        with pytest.raises(LedgerInconsistencyError):
            await ledger.record_manual_payment(loan.deduction_id, Decimal("1000.01"), date(2025, 3, 1))

        assert loan.remaining_balance == Decimal("1000.00")
        assert await ledger.payment_history(loan.deduction_id) == []

    async def test_stale_plan_rejected(self, session, test_employees, salary_loan_type):
        ledger = DeductionLedger(session)
        loan = await ledger.create_loan(
            employee_id="E001",
            deduction_type_id=salary_loan_type.deduction_type_id,
            principal_amount=Decimal("3000"),
            installment_amount=Decimal("1000"),
            start_date=date(2025, 3, 1),
        )
        line = plan_payment(loan, Decimal("1000"))
        await ledger.record_manual_payment(loan.deduction_id, Decimal("200"), date(2025, 3, 2))

        with pytest.raises(LedgerInconsistencyError):
            await ledger.apply(line, payment_date=date(2025, 3, 15))

    async def test_list_loans_with_status(self, session, test_employees, salary_loan_type):
        ledger = DeductionLedger(session)
        await ledger.create_loan(
            employee_id="E001",
            deduction_type_id=salary_loan_type.deduction_type_id,
            principal_amount=Decimal("1000"),
            installment_amount=Decimal("500"),
            start_date=date(2025, 6, 1),
        )

        loans = await ledger.list_loans(date(2025, 4, 1), employee_id="E001")

        assert len(loans) == 1
        assert loans[0][1] is LoanStatus.PENDING
        assert await ledger.list_loans(date(2025, 4, 1), employee_id="E002") == []

    async def test_missing_loan(self, session):
        with pytest.raises(NotFoundError):
            await DeductionLedger(session).payment_history(999)


class TestLoanEdit:
    """Test editing loan terms after creation."""

    @pytest_asyncio.fixture
    async def loan(self, session, test_employees, salary_loan_type) -> Deduction:
        return await DeductionLedger(session).create_loan(
            employee_id="E001",
            deduction_type_id=salary_loan_type.deduction_type_id,
            principal_amount=Decimal("3000"),
            installment_amount=Decimal("1000"),
            start_date=date(2025, 3, 1),
            payment_frequency="monthly",
        )

    async def test_new_terms_rederive_schedule(self, session, loan):
        ledger = DeductionLedger(session)
        await ledger.record_manual_payment(loan.deduction_id, Decimal("1000"), date(2025, 3, 1))
        assert loan.next_deduction_date == date(2025, 4, 1)

        await ledger.update_loan(
            loan.deduction_id,
            {"installment_amount": Decimal("500"), "payment_frequency": "semi-monthly"},
        )

        assert loan.installment_amount == Decimal("500.00")
        assert loan.installments_total == 5
        assert loan.payment_frequency == "semi-monthly"
        assert loan.next_deduction_date == date(2025, 3, 15)
        assert loan.remaining_balance == Decimal("2000.00")

    async def test_frequency_change_before_first_payment(self, session, loan):
        await DeductionLedger(session).update_loan(
            loan.deduction_id, {"payment_frequency": "weekly"}
        )
        assert loan.next_deduction_date == date(2025, 3, 1)

    async def test_plain_fields(self, session, loan):
        await DeductionLedger(session).update_loan(
            loan.deduction_id,
            {"description": "Emergency loan", "auto_deduct": False, "end_date": None},
        )
        assert loan.description == "Emergency loan"
        assert loan.auto_deduct is False
        assert loan.end_date is None

    @pytest.mark.parametrize(
        "changes",
        [
            {},
            {"principal_amount": Decimal("10")},
            {"installment_amount": Decimal("0")},
            {"payment_frequency": "daily"},
            {"end_date": date(2025, 2, 1)},
        ],
    )
    async def test_invalid_changes(self, session, loan, changes):
        with pytest.raises(ValidationError):
            await DeductionLedger(session).update_loan(loan.deduction_id, changes)
        assert loan.installment_amount == Decimal("1000.00")

    async def test_paid_off_loan_stays_closed(self, session, loan):
        ledger = DeductionLedger(session)
        await ledger.record_manual_payment(loan.deduction_id, Decimal("3000"), date(2025, 3, 1))
        assert loan.is_active is False

        with pytest.raises(LedgerInconsistencyError):
            await ledger.update_loan(loan.deduction_id, {"is_active": True})

    async def test_unknown_loan(self, session):
        with pytest.raises(NotFoundError):
            await DeductionLedger(session).update_loan(999, {"description": "x"})
