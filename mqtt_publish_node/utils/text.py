"""
Payload and topic text helpers.
"""
import json
import re
import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

METADATA_PLACEHOLDER = re.compile(r'\$\{([^}]+)\}')
DATA_PLACEHOLDER = re.compile(r'\$\[([^\]]+)\]')


def parse_json_string_to_plain_text(data: str) -> str:
    """
    Unwrap a JSON string literal into raw text.

    '"hello"' becomes 'hello' and '"a\\nb"' becomes a two-line string.
    Anything that is not a quoted literal, or does not decode to a string,
    is returned unchanged. Never raises.
    """
    if len(data) >= 2 and data.startswith('"') and data.endswith('"'):
        try:
            decoded = json.loads(data)
        except ValueError as e:
            logger.debug(f"Payload is not a valid JSON string literal, keeping as is: {e}")
            return data
        if isinstance(decoded, str):
            logger.debug(f"Trimming double quotes. Before trim: [{data}], after trim: [{decoded}]")
            return decoded
    return data


def _lookup_data_value(data: Any, path: str) -> Optional[Any]:
    """Walk a dotted path through parsed JSON."""
    current = data
    for key in path.split('.'):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return None
    return current


def _format_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(',', ':'))
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def process_pattern(pattern: str, metadata: Mapping[str, str], data: str = None) -> str:
    """
    Substitute message fields into a topic pattern.

    ${key} is replaced with the metadata value for key, $[path] with the value
    at the dotted path of the JSON payload. Placeholders that cannot be
    resolved are left in place.
    """
    result = METADATA_PLACEHOLDER.sub(
        lambda m: str(metadata[m.group(1)]) if m.group(1) in metadata else m.group(0),
        pattern
    )

    if data is None or not DATA_PLACEHOLDER.search(result):
        return result

    try:
        parsed = json.loads(data)
    except ValueError:
        return result

    def replace_data(match):
        value = _lookup_data_value(parsed, match.group(1))
        return match.group(0) if value is None else _format_value(value)

    return DATA_PLACEHOLDER.sub(replace_data, result)
