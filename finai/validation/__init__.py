"""Validation of collaborator responses."""

from finai.validation.validator import REQUIRED_FIELDS, TransactionResponseValidator

__all__ = ["REQUIRED_FIELDS", "TransactionResponseValidator"]
