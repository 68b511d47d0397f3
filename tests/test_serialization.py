"""Tests for parsing serialized feature records."""

import json

import pytest


def _record(**overrides):
    data = {
        "boundingBox": {"left": 0, "top": 0, "right": 10, "bottom": 10},
        "headEulerAngleX": 0.0,
        "headEulerAngleY": 0.0,
        "headEulerAngleZ": 0.0,
        "landmarks": [{"type": 4, "x": 1.0, "y": 2.0}],
    }
    data.update(overrides)
    return json.dumps(data)


class TestParseRecord:
    """Test cases for parse_record."""

    def test_valid_record(self):
        """Test a complete record parses."""
        from facematch.features import LandmarkType, parse_record

        record = parse_record(_record(smilingProbability=0.75))

        assert record.get_landmark(LandmarkType.LEFT_EYE).position == (1.0, 2.0)
        assert record.smiling_probability == 0.75
        assert record.left_eye_open_probability is None

    def test_only_landmarks_required(self):
        """Test missing box and angles default to zero."""
        from facematch.features import BoundingBox, parse_record

        record = parse_record(json.dumps({"landmarks": []}))

        assert record.bounding_box == BoundingBox(0, 0, 0, 0)
        assert record.head_euler_angle_y == 0.0
        assert not record.has_landmarks

    def test_unknown_keys_ignored(self):
        """Test extra keys do not make a record malformed."""
        from facematch.features import parse_record

        record = parse_record(_record(trackingId=7, contours=[]))

        assert record.has_landmarks

    def test_duplicate_types_preserved(self):
        """Test repeated landmark types are kept in order."""
        from facematch.features import LandmarkType, parse_record

        record = parse_record(_record(landmarks=[
            {"type": 4, "x": 1, "y": 1},
            {"type": 4, "x": 9, "y": 9},
        ]))

        assert len(record.landmarks) == 2
        assert record.get_landmark(LandmarkType.LEFT_EYE).x == 1.0

    @pytest.mark.parametrize("text", [
        "",
        "not json",
        "[1, 2, 3]",
        "null",
        json.dumps({"boundingBox": {}}),
        _record(landmarks={"type": 4}),
        _record(landmarks=[{"type": 4, "x": 1.0}]),
        _record(landmarks=[{"type": 2, "x": 1.0, "y": 1.0}]),
        _record(landmarks=[{"type": "4", "x": 1.0, "y": 1.0}]),
        _record(landmarks=[{"type": 4, "x": "1", "y": 1.0}]),
        _record(landmarks=[{"type": 4, "x": True, "y": 1.0}]),
        _record(landmarks=[[4, 1.0, 1.0]]),
        _record(boundingBox=[0, 0, 1, 1]),
        _record(headEulerAngleX="up"),
        _record(smilingProbability=1.5),
        _record(landmarks=[{"type": 4, "x": float("nan"), "y": 1.0}]),
        _record(headEulerAngleZ=float("inf")),
        _record(leftEyeOpenProbability=float("nan")),
        '{"landmarks": [{"type": 4, "x": Infinity, "y": 0}]}',
        '{"landmarks": [{"type": 4, "x": ' + "1" * 400 + ', "y": 0}]}',
    ])
    def test_malformed(self, text):
        """Test malformed records raise MalformedRecordError."""
        from facematch.features import MalformedRecordError, parse_record

        with pytest.raises(MalformedRecordError):
            parse_record(text)

    def test_malformed_is_value_error(self):
        """Test callers catching ValueError also catch malformed records."""
        from facematch.features import MalformedRecordError

        assert issubclass(MalformedRecordError, ValueError)

    def test_non_string_input(self):
        """Test non-text input is reported as malformed."""
        from facematch.features import MalformedRecordError, parse_record

        with pytest.raises(MalformedRecordError):
            parse_record(None)


class TestRecordToDict:
    """Test cases for record_to_dict."""

    def test_type_written_as_integer(self):
        """Test landmark types are written as their integer ids."""
        from facematch.features import (
            BoundingBox,
            FeatureRecord,
            Landmark,
            LandmarkType,
            record_to_dict,
        )

        record = FeatureRecord(
            bounding_box=BoundingBox(0, 0, 1, 1),
            landmarks=(Landmark(LandmarkType.MOUTH_RIGHT, 5.0, 6.0),),
        )
        data = record_to_dict(record)

        assert data["landmarks"] == [{"type": 11, "x": 5.0, "y": 6.0}]
        assert type(data["landmarks"][0]["type"]) is int
