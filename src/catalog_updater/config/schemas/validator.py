"""Schema check for ``.pcurc.json`` / ``pcu.config.json``.

The document is validated before it is merged with the built-in package
rules, so a typo in a rule fails loudly instead of silently matching
nothing.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import orjson
from jsonschema import Draft7Validator, ValidationError
from jsonschema.exceptions import best_match

from catalog_updater.exceptions import ConfigurationError
from catalog_updater.logger import get_logger

logger = get_logger(__name__)

PCURC_SCHEMA_PATH = Path(__file__).parent / "pcurc.schema.json"


@lru_cache(maxsize=1)
def load_pcurc_schema() -> dict[str, Any]:
    """Return the bundled project config schema (read once per process)."""
    return orjson.loads(PCURC_SCHEMA_PATH.read_bytes())


def describe_location(error: ValidationError) -> str:
    """Render the JSON path of an error, e.g. ``packageRules[2].target``."""
    location = ""
    for part in error.absolute_path:
        if isinstance(part, int):
            location += f"[{part}]"
        else:
            location += f".{part}" if location else str(part)
    return location or "<root>"


def describe_error(error: ValidationError) -> str:
    """Turn a jsonschema error into a message about the offending setting."""
    if error.validator == "additionalProperties":
        return f"Unknown setting: {error.message}"
    if error.validator == "enum":
        allowed = ", ".join(str(v) for v in error.validator_value)
        return f"{error.instance!r} is not one of: {allowed}"
    if error.validator == "type":
        return (
            f"expected {error.validator_value}, "
            f"got {type(error.instance).__name__}"
        )
    if error.validator in ("minimum", "maximum"):
        return f"{error.instance} is out of range ({error.message})"
    return error.message


class ConfigValidator:
    """Validates project configuration documents with a Draft 7 validator."""

    def __init__(self, schema: dict[str, Any] | None = None) -> None:
        self._validator = Draft7Validator(schema or load_pcurc_schema())

    def validate_project_config(
        self, config: Any, source: str | None = None
    ) -> None:
        """Validate a parsed project configuration document.

        Only the most relevant error (``best_match``) is reported; the
        total count goes to the debug log.

        Args:
            config: Parsed JSON document
            source: File the document came from, for error messages

        Raises:
            ConfigurationError: If the document does not match the schema

        """
        errors = list(self._validator.iter_errors(config))
        if not errors:
            return

        error = best_match(errors)
        if len(errors) > 1:
            logger.debug(
                "%d schema errors in %s, reporting best match",
                len(errors),
                source or "project config",
            )
        raise ConfigurationError(
            f"{describe_location(error)}: {describe_error(error)}",
            source,
        )
