"""
Upgrades of persisted node configuration documents between schema versions.
"""
import logging
from typing import Any, Callable, List, Tuple

logger = logging.getLogger(__name__)

PARSE_TO_PLAIN_TEXT = 'parseToPlainText'


def _add_parse_to_plain_text(document: dict) -> bool:
    """Version 0 documents predate the plain-text option."""
    if PARSE_TO_PLAIN_TEXT in document:
        return False
    document[PARSE_TO_PLAIN_TEXT] = False
    return True


# (from_version, upgrade) pairs, applied in order for every entry at or
# above the document's version.
UPGRADES: List[Tuple[int, Callable[[dict], bool]]] = [
    (0, _add_parse_to_plain_text),
]

CURRENT_VERSION = UPGRADES[-1][0] + 1


def migrate(from_version: int, document: Any) -> Tuple[bool, Any]:
    """
    Upgrade a configuration document saved at from_version.

    Returns (changed, document). The document is updated in place; fields
    outside the versioned ones are never touched. Non-dict documents are
    returned unchanged.
    """
    if not isinstance(document, dict):
        return False, document

    changed = False
    for version, upgrade in UPGRADES:
        if version < from_version:
            continue
        if upgrade(document):
            logger.debug(f"Upgraded configuration from version {version} to {version + 1}")
            changed = True
    return changed, document
