# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
from typing import NamedTuple

from wilson.core.constants import ERROR_PATTERNS, ErrorPattern, ErrorType


class ErrorAnalysis(NamedTuple):
    """Classification of a tool error message."""

    error_type: ErrorType
    suggestion: str | None = None
    pattern: ErrorPattern | None = None


def analyze_error(message: str) -> ErrorAnalysis:
    """Classify a tool error message against the known patterns.

    Args:
        message: Error text from a failed ToolResult.

    Returns:
        The first matching pattern's classification, or UNKNOWN.
    """
    for pattern in ERROR_PATTERNS:
        if pattern.pattern.search(message):
            return ErrorAnalysis(pattern.error_type, pattern.suggestion, pattern)
    return ErrorAnalysis(ErrorType.UNKNOWN)
