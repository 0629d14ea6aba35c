"""
Two-Stage Validation of Parser Responses

DESIGN DECISION: Nothing the parsing model returns is trusted until it has
been checked. A raw response (a loosely-typed dict decoded from the model's
JSON) crosses into the typed domain only through this module.

STAGE 1 - SCHEMA VALIDATION:
- Every required field is present and non-blank
- A response missing any of them is INCOMPLETE

STAGE 2 - SEMANTIC VALIDATION:
- The transaction type is one we know
- The amount is a positive number
- The date is a real calendar date
- A response that fails here is a FAILURE

IMPORTANT: Validation NEVER silently fixes issues (no guessing a category,
no defaulting the amount). The user is asked to clarify instead.
"""

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import ValidationError

from finai.models.finance import (
    ParseFailure,
    ParseIncomplete,
    ParseOutcome,
    ParseSuccess,
    TransactionCandidate,
    TransactionType,
)


REQUIRED_FIELDS = ("type", "amount", "category", "description", "date")


class TransactionResponseValidator:
    """
    Turns a raw parser response into a ParseOutcome.

    Stage 2 only runs when stage 1 passes.
    """

    def _validate_schema(self, raw: dict[str, Any]) -> list[str]:
        """
        Stage 1: required field presence.

        Returns: names of missing fields (empty when the schema passes)
        """
        missing = []
        for field in REQUIRED_FIELDS:
            value = raw.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field)
        return missing

    def _parse_type(self, value: Any) -> TransactionType:
        try:
            return TransactionType(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown transaction type: {value!r}")

    def _parse_amount(self, value: Any) -> Decimal:
        if isinstance(value, bool):
            raise ValueError(f"Amount is not a number: {value!r}")
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Amount is not a number: {value!r}")
        if not amount.is_finite() or amount <= 0:
            raise ValueError(f"Amount must be greater than zero: {value!r}")
        return amount

    def _parse_date(self, value: Any, now: datetime) -> datetime:
        """
        Accept YYYY-MM-DD or a full ISO timestamp.

        A bare date equal to today is stamped with the current time, any
        other bare date with local midnight.
        """
        text = str(value).strip()
        try:
            if len(text) == 10:
                day = date.fromisoformat(text)
                if day == now.date():
                    return now
                return datetime.combine(day, time.min)
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Date is not a valid ISO date: {value!r}")

    def _validate_semantic(
        self,
        raw: dict[str, Any],
        now: datetime,
    ) -> TransactionCandidate:
        """
        Stage 2: value checks.

        Raises:
            ValueError: describing the first value that fails
        """
        try:
            return TransactionCandidate(
                type=self._parse_type(raw["type"]),
                amount=self._parse_amount(raw["amount"]),
                category=str(raw["category"]),
                description=str(raw["description"]),
                date=self._parse_date(raw["date"], now),
            )
        except ValidationError as e:
            raise ValueError(str(e))

    def validate(
        self,
        raw: Optional[Any],
        now: Optional[datetime] = None,
    ) -> ParseOutcome:
        """
        Run the full two-stage pipeline.

        Args:
            raw: Decoded parser response; anything that is not a dict fails
            now: Reference time for resolving "today"

        Returns:
            ParseSuccess, ParseIncomplete or ParseFailure
        """
        if raw is None:
            return ParseFailure(reason="Parser returned no result")
        if not isinstance(raw, dict):
            return ParseFailure(
                reason=f"Parser returned {type(raw).__name__}, expected an object"
            )

        missing = self._validate_schema(raw)
        if missing:
            return ParseIncomplete(missing_fields=missing)

        try:
            candidate = self._validate_semantic(raw, now or datetime.now())
        except ValueError as e:
            return ParseFailure(reason=str(e))

        return ParseSuccess(candidate=candidate)
