"""
Centralized Error Handling for Office Nexus Ledger

This module provides:
- Custom exception hierarchy for posting, capital and tax errors
- Standardized error responses
- Error logging
- Database error mapping
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import (
    SQLAlchemyError,
    IntegrityError,
    OperationalError,
    DataError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configure logging
logger = logging.getLogger("nexus_ledger.errors")


class ErrorCode(str, Enum):
    """Standardized error codes for the application"""

    # Validation Errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_TAX_PERIOD = "INVALID_TAX_PERIOD"
    UNKNOWN_ACCOUNT = "UNKNOWN_ACCOUNT"

    # Resource Errors (404/409)
    NOT_FOUND = "NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    LEDGER_IMMUTABLE = "LEDGER_IMMUTABLE"

    # Business Logic Errors (422)
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    UNBALANCED_TRANSACTION = "UNBALANCED_TRANSACTION"
    CAPITAL_LIMIT_EXCEEDED = "CAPITAL_LIMIT_EXCEEDED"
    OWNERSHIP_CEILING_EXCEEDED = "OWNERSHIP_CEILING_EXCEEDED"
    DECLARATION_NOT_CONFIRMED = "DECLARATION_NOT_CONFIRMED"

    # Database Errors (500)
    DATABASE_ERROR = "DATABASE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DATA_INTEGRITY_ERROR = "DATA_INTEGRITY_ERROR"

    # Internal Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


def _jsonable(value: Any) -> Any:
    """Make exception details JSON serializable (Decimal/UUID/date)."""
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = _jsonable(self.details)
        return result


# ============================================================================
# Validation Exceptions
# ============================================================================

class ValidationException(AppException):
    """Base validation exception"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            field=field,
        )


class InvalidAmountException(ValidationException):
    """Invalid monetary amount"""

    def __init__(self, amount: Any, field: str = "amount", message: Optional[str] = None):
        super().__init__(
            message=message or f"Invalid amount: {amount}. Amount must be a positive number.",
            field=field,
            code=ErrorCode.INVALID_AMOUNT,
            details={"provided_amount": str(amount)},
        )


class InvalidTaxPeriodException(ValidationException):
    """Malformed period or quarter identifier"""

    def __init__(self, period: str, expected: str):
        super().__init__(
            message=f"Invalid tax period '{period}'. Expected {expected}.",
            field="period",
            code=ErrorCode.INVALID_TAX_PERIOD,
            details={"provided": period, "expected_format": expected},
        )


class UnknownAccountError(ValidationException):
    """Account code is not in the chart of accounts"""

    def __init__(self, account_code: str):
        super().__init__(
            message=f"Unknown account code '{account_code}'",
            field="account_code",
            code=ErrorCode.UNKNOWN_ACCOUNT,
            details={"account_code": account_code},
        )


# ============================================================================
# Resource Exceptions
# ============================================================================

class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, UUID]] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        if message is None:
            if resource_id:
                message = f"{resource_type} with ID '{resource_id}' not found"
            else:
                message = f"{resource_type} not found"
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None},
        )


class TransactionNotFoundException(NotFoundException):
    """Ledger transaction not found"""

    def __init__(self, transaction_id: Union[str, UUID]):
        super().__init__(
            resource_type="LedgerTransaction",
            resource_id=transaction_id,
            code=ErrorCode.TRANSACTION_NOT_FOUND,
        )


class ConflictException(AppException):
    """Resource conflict exception"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        code: ErrorCode = ErrorCode.RESOURCE_CONFLICT,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        if resource_type:
            _details["resource_type"] = resource_type
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=_details,
        )


class DuplicateEntryException(ConflictException):
    """Duplicate entry exception"""

    def __init__(
        self,
        resource_type: str,
        field: str,
        value: str,
    ):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            resource_type=resource_type,
            code=ErrorCode.DUPLICATE_ENTRY,
            details={"field": field, "value": value},
        )


class ImmutableLedgerError(ConflictException):
    """Posted ledger rows cannot be changed or removed"""

    def __init__(self, operation: str, entry_id: Optional[Union[str, UUID]] = None):
        super().__init__(
            message=f"Ledger entries are append-only; {operation} is not allowed. Post a reversal instead.",
            resource_type="LedgerEntry",
            code=ErrorCode.LEDGER_IMMUTABLE,
            details={"operation": operation, "entry_id": str(entry_id) if entry_id else None},
        )


# ============================================================================
# Business Logic Exceptions
# ============================================================================

class BusinessRuleException(AppException):
    """Business rule violation exception"""

    def __init__(
        self,
        message: str,
        rule: Optional[str] = None,
        code: ErrorCode = ErrorCode.BUSINESS_RULE_VIOLATION,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        if rule:
            _details["violated_rule"] = rule
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=_details,
        )


class ImbalanceError(BusinessRuleException):
    """Debits and credits of a transaction do not agree"""

    def __init__(self, total_debit: Decimal, total_credit: Decimal, tolerance: Decimal):
        difference = total_debit - total_credit
        super().__init__(
            message=(
                f"Transaction is not balanced. Debit: {total_debit}, Credit: {total_credit}, "
                f"Difference: {difference} (tolerance {tolerance})"
            ),
            rule="DEBITS_EQUAL_CREDITS",
            code=ErrorCode.UNBALANCED_TRANSACTION,
            details={
                "total_debit": total_debit,
                "total_credit": total_credit,
                "difference": difference,
                "tolerance": tolerance,
            },
        )


class CapitalLimitExceeded(BusinessRuleException):
    """Share allocation would exceed authorized shares"""

    def __init__(self, issued: int, requested: int, authorized: int):
        available = authorized - issued
        super().__init__(
            message=(
                f"Cannot allocate {requested:,} shares. Issued: {issued:,}, "
                f"Authorized: {authorized:,}, Available: {available:,}"
            ),
            rule="ISSUED_SHARES_WITHIN_AUTHORIZED",
            code=ErrorCode.CAPITAL_LIMIT_EXCEEDED,
            details={
                "issued_shares": issued,
                "requested_shares": requested,
                "authorized_shares": authorized,
                "available_shares": available,
            },
        )


class OwnershipCeilingExceeded(BusinessRuleException):
    """Beneficial ownership would total more than the ceiling"""

    def __init__(self, current_total: Decimal, proposed: Decimal, ceiling: Decimal):
        super().__init__(
            message=(
                f"Total beneficial ownership would be {current_total + proposed}%. "
                f"Current: {current_total}%, Proposed: {proposed}%, Ceiling: {ceiling}%"
            ),
            rule="OWNERSHIP_TOTAL_WITHIN_CEILING",
            code=ErrorCode.OWNERSHIP_CEILING_EXCEEDED,
            details={
                "current_total": current_total,
                "proposed": proposed,
                "ceiling": ceiling,
            },
        )


class DeclarationNotConfirmed(BusinessRuleException):
    """Dividend declaration must be confirmed before distribution"""

    def __init__(self, declaration_id: Union[str, UUID], current_status: str):
        super().__init__(
            message=f"Dividend declaration {declaration_id} is '{current_status}'; only confirmed declarations can be distributed",
            rule="DECLARATION_CONFIRMED",
            code=ErrorCode.DECLARATION_NOT_CONFIRMED,
            details={"declaration_id": declaration_id, "status": current_status},
        )


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = _jsonable(details)

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={
            "code": exc.code.value,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=exc.original_error,
    )

    return create_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        field=exc.field,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    code_map = {
        400: ErrorCode.INVALID_INPUT,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.RESOURCE_CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        500: ErrorCode.INTERNAL_ERROR,
    }

    error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    logger.warning(
        f"HTTPException: {exc.status_code} - {message}",
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        code=error_code,
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning(
        f"ValidationError: {len(errors)} validation errors",
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy errors"""
    error_message = "A database error occurred"
    error_code = ErrorCode.DATABASE_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exc, IntegrityError):
        error_message = "Data integrity constraint violated"
        error_code = ErrorCode.DATA_INTEGRITY_ERROR
        error_str = str(exc.orig).lower() if exc.orig else ""
        if "unique" in error_str or "duplicate" in error_str:
            error_message = "A record with this value already exists"
            error_code = ErrorCode.DUPLICATE_ENTRY
            status_code = status.HTTP_409_CONFLICT
        elif "foreign key" in error_str:
            error_message = "Referenced record does not exist"
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, OperationalError):
        error_message = "Database operation failed"
        error_code = ErrorCode.CONNECTION_ERROR
    elif isinstance(exc, DataError):
        error_message = "Invalid data format for database"
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    logger.error(
        f"SQLAlchemyError: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=error_code,
        message=error_message,
        status_code=status_code,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


# ============================================================================
# Utility Functions
# ============================================================================

def validate_amount(amount: Any, field: str = "amount", allow_zero: bool = False) -> Decimal:
    """Validate a monetary amount and return it as Decimal"""
    try:
        value = Decimal(str(amount))
    except (TypeError, ValueError, ArithmeticError):
        raise InvalidAmountException(amount, field)
    if not value.is_finite() or value < 0 or (not allow_zero and value == 0):
        raise InvalidAmountException(amount, field)
    return value


# Export all exceptions for easy importing
__all__ = [
    # Base
    "AppException",
    "ErrorCode",

    # Validation
    "ValidationException",
    "InvalidAmountException",
    "InvalidTaxPeriodException",
    "UnknownAccountError",

    # Resource
    "NotFoundException",
    "TransactionNotFoundException",
    "ConflictException",
    "DuplicateEntryException",
    "ImmutableLedgerError",

    # Business Logic
    "BusinessRuleException",
    "ImbalanceError",
    "CapitalLimitExceeded",
    "OwnershipCeilingExceeded",
    "DeclarationNotConfirmed",

    # Handlers
    "setup_exception_handlers",
    "create_error_response",

    # Utilities
    "validate_amount",
]
