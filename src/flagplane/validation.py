"""Flag value parsing and validation.

Classifies raw ``-value`` text into a typed flag value and enforces the
percentile range before anything reaches storage.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from flagplane.errors import InvalidFeatureTypeError, InvalidRangeError, NameRequiredError
from flagplane.models import FeatureType

logger = logging.getLogger(__name__)

BOOLEAN_LITERALS = {"true": True, "false": False}

_DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

PERCENTILE_MIN = 0.0
PERCENTILE_MAX = 1.0


@dataclass(frozen=True)
class ParsedValue:
    """Result of classifying a raw value."""

    value: Any
    feature_type: FeatureType

    @property
    def is_valid(self) -> bool:
        return self.feature_type is not FeatureType.INVALID


class ValueValidator:
    """Classifies and range-checks raw flag values."""

    def classify(self, raw: str | None) -> ParsedValue:
        """Classify raw text without validating ranges.

        Order: boolean literal, decimal number, any other non-blank text.
        Empty or blank input is ``INVALID``.
        """
        if raw is None or not raw.strip():
            return ParsedValue(None, FeatureType.INVALID)

        text = raw.strip()
        lowered = text.lower()
        if lowered in BOOLEAN_LITERALS:
            return ParsedValue(BOOLEAN_LITERALS[lowered], FeatureType.BOOLEAN)

        if _DECIMAL_RE.match(text):
            return ParsedValue(float(text), FeatureType.PERCENTILE)

        return ParsedValue(raw, FeatureType.STRING)

    def validate(self, parsed: ParsedValue) -> ParsedValue:
        """Reject invalid classifications and out-of-range percentiles.

        Raises:
            InvalidFeatureTypeError: classification failed
            InvalidRangeError: percentile outside [0.0, 1.0]
        """
        if parsed.feature_type is FeatureType.INVALID:
            raise InvalidFeatureTypeError()
        if parsed.feature_type is FeatureType.PERCENTILE:
            if not PERCENTILE_MIN <= parsed.value <= PERCENTILE_MAX:
                raise InvalidRangeError()
        return parsed

    def parse(self, raw: str | None) -> ParsedValue:
        """Classify then validate."""
        parsed = self.validate(self.classify(raw))
        logger.debug(f"Parsed {raw!r} as {parsed.feature_type.value}")
        return parsed


def parse_value(raw: str | None) -> tuple[Any, FeatureType]:
    """Convenience function returning ``(value, feature_type)``.

    Raises:
        InvalidFeatureTypeError: value could not be classified
        InvalidRangeError: percentile out of range
    """
    parsed = ValueValidator().parse(raw)
    return parsed.value, parsed.feature_type


def require_name(name: str | None) -> str:
    """Return the stripped flag name or raise :class:`NameRequiredError`."""
    if name is None or not name.strip():
        raise NameRequiredError()
    return name.strip()
