"""
Parsing of vision model answers.

Models are asked for a bare JSON array but often wrap it in prose or a
markdown fence. The whole answer is tried first; failing that, the first
`[{...}]` span is cut out and parsed.
"""

import json
import re
from typing import Any

from cleanwallet.scanning.images import ScanError


JSON_ARRAY_PATTERN = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")


class ResponseParseError(ScanError):
    """The model answer does not contain a usable JSON array."""
    pass


def extract_transactions_from_response(content: str) -> list[dict[str, Any]]:
    """
    Parse the transaction list out of a model answer.

    Raises:
        ResponseParseError: If no JSON array can be recovered
    """
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError):
        match = JSON_ARRAY_PATTERN.search(content or "")
        if not match:
            raise ResponseParseError("could not extract JSON")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise ResponseParseError(f"Extracted JSON is invalid: {e}")

    if not isinstance(data, list):
        raise ResponseParseError(
            f"Expected a JSON array of transactions, got {type(data).__name__}"
        )

    return [row for row in data if isinstance(row, dict)]
