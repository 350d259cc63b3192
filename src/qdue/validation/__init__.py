"""Validation of templates, rules, exceptions and assignments."""

from qdue.validation.validator import (
    AssignmentValidator,
    ExceptionValidator,
    RuleValidator,
    TemplateValidationResult,
    TemplateValidator,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
    validate_shift_type,
)

__all__ = [
    "AssignmentValidator",
    "ExceptionValidator",
    "RuleValidator",
    "TemplateValidationResult",
    "TemplateValidator",
    "ValidationError",
    "ValidationErrorType",
    "ValidationResult",
    "validate_shift_type",
]
