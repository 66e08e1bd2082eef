"""Bulk import of key/value pairs from a JSON object."""

from __future__ import annotations

import json
import logging
from typing import IO, Any

from flagplane.errors import ImportFormatError
from flagplane.services.mutations import MutationService
from flagplane.validation import require_name

logger = logging.getLogger(__name__)

SCALAR_TYPES = (str, int, float, bool)


class BulkImporter:
    """Replays a flat JSON object through :meth:`MutationService.set_feature`.

    Values keep their decoded JSON type; no text parsing is applied and the
    feature type is left unset. Only scalar values are accepted; objects,
    arrays and null raise :class:`ImportFormatError`. Keys are processed in
    source order and the first failure aborts the run.
    """

    def __init__(self, mutations: MutationService) -> None:
        self._mutations = mutations

    def decode(self, data: bytes | str) -> dict[str, Any]:
        """Decode the payload into an ordered mapping.

        Raises:
            ImportFormatError: payload is not a JSON object
        """
        try:
            decoded = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ImportFormatError(f"invalid JSON: {e}") from e
        if not isinstance(decoded, dict):
            raise ImportFormatError("import payload must be a JSON object of key -> value")
        return decoded

    def import_items(self, items: dict[str, Any], scope: str = "") -> list[str]:
        """Set every item, stopping at the first error.

        Returns:
            Keys imported, in order
        """
        builder = self._mutations.builder
        imported: list[str] = []
        for key, value in items.items():
            if not isinstance(value, SCALAR_TYPES):
                raise ImportFormatError(
                    f"value for {key!r} must be a string, number or boolean, "
                    f"got {type(value).__name__}"
                )
            feature = builder.build(require_name(key), value, scope=scope)
            self._mutations.set_feature(feature)
            logger.info(f"set {key} to {value!r}")
            imported.append(key)
        return imported

    def import_stream(self, stream: IO[bytes], scope: str = "") -> list[str]:
        """Read a JSON object from ``stream`` and import it."""
        return self.import_items(self.decode(stream.read()), scope=scope)
