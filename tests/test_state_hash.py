"""
Tests for the shareable state hash.
"""
import base64
import json

import pytest

from imagor_editor.models import TransformParameters
from imagor_editor.state_hash import deserialize_state_from_hash, serialize_state_to_hash


class TestStateHash:

    def test_defaults_encode_empty(self):
        assert serialize_state_to_hash(TransformParameters()) == ""
        assert serialize_state_to_hash(TransformParameters(grayscale=False)) == ""

    def test_empty_decodes_to_defaults(self):
        assert deserialize_state_from_hash("") == TransformParameters()

    def test_compact_sorted_json(self):
        value = serialize_state_to_hash(TransformParameters(width=300, brightness=10))
        assert "=" not in value
        padded = value + "=" * (-len(value) % 4)
        assert base64.urlsafe_b64decode(padded).decode() == '{"brightness":10,"width":300}'

    def test_false_flags_dropped(self):
        params = TransformParameters(hue=90, h_flip=False)
        assert deserialize_state_from_hash(serialize_state_to_hash(params)) == TransformParameters(hue=90)

    def test_equal_params_equal_hash(self):
        first = TransformParameters(width=10, height=20, grayscale=True)
        second = TransformParameters(grayscale=True, height=20, width=10)
        assert serialize_state_to_hash(first) == serialize_state_to_hash(second)

    @pytest.mark.parametrize("value", [
        "!!!",
        "bm90IGpzb24",  # "not json"
        base64.urlsafe_b64encode(json.dumps([1]).encode()).decode(),
        base64.urlsafe_b64encode(json.dumps({"sepia": 1}).encode()).decode(),
    ])
    def test_garbage_decodes_to_none(self, value):
        assert deserialize_state_from_hash(value) is None
