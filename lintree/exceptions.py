"""
Custom exceptions with actionable guidance.

All errors raised by :mod:`lintree` derive from :class:`LintreeError`, which
is also a `ValueError` since every failure stems from invalid input or
infeasible constraints rather than transient conditions.
"""

from __future__ import annotations


class LintreeError(ValueError):
    """Base exception for lintree errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class ConfigurationError(LintreeError):
    """Raised when the input is missing or has the wrong shape."""


class NumericalError(LintreeError):
    """Raised when a distance cannot be computed from the cluster statistics.

    Parameters
    ----------
    message : `str`
        Description of the failure.
    pair : `tuple` [`str`, `str`], optional
        The cluster pair whose comparison failed.
    suggestion : `str`, optional
        How to resolve the failure.
    """

    def __init__(self, message: str, pair: tuple | None = None,
                 suggestion: str | None = None):
        self.pair = pair
        if pair is not None:
            message = f"{message} (clusters {pair[0]!r} and {pair[1]!r})"
        super().__init__(message, suggestion=suggestion)


class UnsatisfiableConstraintError(LintreeError):
    """Raised when no tree can make every requested endpoint a leaf."""

    def __init__(self, endpoints):
        self.endpoints = list(endpoints)
        super().__init__(
            message=f"No solvable tree for endpoints {self.endpoints}",
            suggestion=(
                "Request fewer endpoints, or enable the outgroup so that two "
                "endpoints may be joined into an isolated dyad."
            ),
        )


class MedianCentroidWarning(UserWarning):
    """Issued when median centroids are combined with covariance-scaled distances."""
