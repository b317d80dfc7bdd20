"""
Two-Stage Expense Validation

DESIGN DECISION: A proposed expense is checked in two stages before it
is saved:

STAGE 1 - FIELD VALIDATION:
- Description presence
- Positive amount
- Payer is a household member
- This catches incomplete forms

STAGE 2 - SPLIT VALIDATION:
- Participants / recipients present and known
- Custom split amounts add up to the total
- Payer not lending to themselves
- Suspicious amounts and future dates
- This catches splits that would not mean what the user intended

WHY HERE AND NOT IN THE MODELS:
Stored expenses are folded permissively so that an old or hand-edited
row never breaks the balances. Strictness belongs at creation time only.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can correct the form.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from homesplit.config import AppSettings, get_settings
from homesplit.models import (
    CustomSplit,
    EqualSplit,
    Expense,
    FullPaymentSplit,
    Roster,
    ValidationIssue,
    ValidationResult,
)


class ExpenseValidator:
    """
    Validates a proposed expense against the household roster.

    Stage 2 only runs when stage 1 passes; a split cannot be judged
    against an amount or payer that is itself invalid.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_fields(
        self,
        expense: Expense,
        roster: Roster,
    ) -> list[ValidationIssue]:
        """Stage 1: required fields and basic values."""
        issues = []

        if not expense.description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                suggested_fix="Say what the money was spent on",
            ))

        if not expense.amount.is_finite() or expense.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the total amount paid",
            ))

        if not roster.contains(expense.paid_by):
            issues.append(ValidationIssue(
                field="paid_by",
                issue_type="unknown_user",
                message=f"Payer '{expense.paid_by}' is not a household member",
                severity="error",
                suggested_fix="Pick the payer from the household list",
            ))

        return issues

    def _unknown_users(
        self,
        field: str,
        user_ids: list[str],
        roster: Roster,
    ) -> list[ValidationIssue]:
        unknown = [u for u in user_ids if not roster.contains(u)]
        if not unknown:
            return []
        return [ValidationIssue(
            field=field,
            issue_type="unknown_user",
            message=f"Not household members: {', '.join(unknown)}",
            severity="error",
            suggested_fix="Only choose people from the household list",
        )]

    def _validate_split(
        self,
        expense: Expense,
        roster: Roster,
    ) -> list[ValidationIssue]:
        """
        Stage 2: the split strategy and semantic checks.

        Checks:
        - Equal split has participants
        - Custom split sums to the amount (within tolerance)
        - Full payment has recipients other than the payer
        - Unusually large amounts
        - Future dates
        """
        issues = []
        split = expense.split

        if isinstance(split, EqualSplit):
            if not split.participants:
                issues.append(ValidationIssue(
                    field="participants",
                    issue_type="missing",
                    message="Select at least one person to split with",
                    severity="error",
                ))
            issues.extend(
                self._unknown_users("participants", split.participants, roster)
            )

        elif isinstance(split, CustomSplit):
            negative = [u for u, v in split.custom_splits.items() if v < 0]
            if negative:
                issues.append(ValidationIssue(
                    field="custom_splits",
                    issue_type="invalid_value",
                    message=f"Split amounts cannot be negative ({', '.join(negative)})",
                    severity="error",
                ))

            total = sum(split.custom_splits.values(), Decimal("0"))
            tolerance = self._settings.custom_split_tolerance
            if not abs(total - expense.amount) < tolerance:
                issues.append(ValidationIssue(
                    field="custom_splits",
                    issue_type="split_mismatch",
                    message=(
                        f"Split amounts add up to {total:,.2f} "
                        f"but the total is {expense.amount:,.2f}"
                    ),
                    severity="error",
                    suggested_fix="Adjust the amounts so they add up to the total",
                ))

            issues.extend(self._unknown_users(
                "custom_splits", list(split.custom_splits.keys()), roster
            ))

            owing = [u for u, v in split.custom_splits.items() if v > 0]
            if owing and all(u == expense.paid_by for u in owing):
                issues.append(ValidationIssue(
                    field="custom_splits",
                    issue_type="no_debt",
                    message="Only the payer has a share, so nobody owes anything",
                    severity="warning",
                ))

        elif isinstance(split, FullPaymentSplit):
            if not split.loan_to:
                issues.append(ValidationIssue(
                    field="loan_to",
                    issue_type="missing",
                    message="Select who you paid for",
                    severity="error",
                ))
            if expense.paid_by in split.loan_to:
                issues.append(ValidationIssue(
                    field="loan_to",
                    issue_type="self_loan",
                    message="The payer cannot pay for themselves",
                    severity="error",
                    suggested_fix="Remove the payer from the list",
                ))
            issues.extend(self._unknown_users("loan_to", split.loan_to, roster))

        max_amount = self._settings.max_expense_amount
        if expense.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({expense.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        max_future = datetime.now() + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        expense_date = expense.date
        if expense_date.tzinfo is not None:
            # Local wall-clock time, comparable with datetime.now()
            expense_date = expense_date.astimezone().replace(tzinfo=None)
        if expense_date > max_future:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({expense.date.date()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return issues

    def validate(self, expense: Expense, roster: Roster) -> ValidationResult:
        """
        Run the full two-stage validation.

        Returns:
            ValidationResult with all issues found
        """
        all_issues = self._validate_fields(expense, roster)

        if not any(issue.severity == "error" for issue in all_issues):
            all_issues.extend(self._validate_split(expense, roster))

        warnings = [i.message for i in all_issues if i.severity == "warning"]

        return ValidationResult(
            expense_id=expense.id,
            is_valid=not any(i.severity == "error" for i in all_issues),
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the add-expense form shows.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.is_valid:
            lines.append("")
            lines.append("You can still save, but please double-check.")

        return "\n".join(lines)
