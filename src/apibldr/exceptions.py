"""Exception hierarchy for apibldr.

All exceptions inherit from :class:`ApibldrError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apibldr.exit_codes`.
The top-level error handler in :func:`apibldr.app.main` catches
``ApibldrError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

The Transformation Engine and the Validator never raise any of these: folds
drop incomplete drafts silently and validation problems are returned as
:class:`~apibldr.validator.ValidationIssue` values.

Subclass hierarchy::

    ApibldrError (exit 1)
    +-- InvalidUsageError    (exit 2)
    +-- ParseError           (exit 7)
    +-- ImportRejectedError  (exit 8)
    +-- PersistenceError     (exit 9)
    +-- ConfigError          (exit 1)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from apibldr.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_IMPORT_REJECTED,
    EXIT_INVALID_USAGE,
    EXIT_PARSE_ERROR,
    EXIT_PERSISTENCE_ERROR,
)

if TYPE_CHECKING:
    from apibldr.validator import ValidationIssue


class ApibldrError(Exception):
    """Base exception for all apibldr errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ApibldrError):
    """Raised for invalid CLI arguments (unknown section, bad response spec, ...)."""

    exit_code = EXIT_INVALID_USAGE


class ParseError(ApibldrError):
    """Raised when import text is neither valid JSON nor valid YAML."""

    exit_code = EXIT_PARSE_ERROR


class ImportRejectedError(ApibldrError):
    """Raised when a parsed document cannot replace the current one.

    Either the validator reported blocking issues or the parsed object does
    not have a shape the canonical model can hold. The current document and
    editing state are left untouched.

    Args:
        message: Summary of the rejection.
        issues: The blocking validation issues, if any.
    """

    exit_code = EXIT_IMPORT_REJECTED

    def __init__(self, message: str, issues: Sequence[ValidationIssue] = ()):
        super().__init__(message)
        self.issues = list(issues)


class PersistenceError(ApibldrError):
    """Raised by section store backends when a read or write fails.

    :class:`~apibldr.store.persistence.PersistenceLayer` catches and logs
    this; it only reaches the user when a store cannot be opened at all.
    """

    exit_code = EXIT_PERSISTENCE_ERROR


class ConfigError(ApibldrError):
    """Raised for configuration problems (invalid JSON, unknown store backend)."""

    exit_code = EXIT_GENERIC_FAILURE
