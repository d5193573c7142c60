"""
Shareable state hash for the base parameters.

Only values that differ from the defaults are kept; they are written as
compact JSON and encoded with unpadded URL-safe base64 so the result can
sit in a URL fragment.  Decoding is forgiving: anything that does not
decode to a parameter object yields None.
"""

import base64
import binascii
import json
import logging

from imagor_editor.models import TransformParameters

logger = logging.getLogger(__name__)


def serialize_state_to_hash(params: TransformParameters) -> str:
    """Encode *params*; an all-default state encodes to an empty string."""
    values = {key: value for key, value in params.to_dict().items() if value is not False}
    if not values:
        return ""
    text = json.dumps(values, sort_keys=True, separators=(",", ":"))
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def deserialize_state_from_hash(value: str) -> TransformParameters | None:
    """Decode a hash produced by ``serialize_state_to_hash``."""
    if not value:
        return TransformParameters()
    padded = value + "=" * (-len(value) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
        return TransformParameters.from_dict(data)
    except (binascii.Error, UnicodeError, ValueError, TypeError, AttributeError) as exc:
        logger.debug("Ignoring unreadable state hash: %s", exc)
        return None
