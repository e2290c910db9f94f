"""Tests for the stream event model and frame encoding."""

import json
import random
from datetime import datetime, timedelta, timezone

import pytest

from sse_heartbeat.core.events import (
    CONNECTED,
    TICK,
    StreamEvent,
    connected_event,
    format_event,
    isoformat,
    sample_value,
    tick_event,
)
from sse_heartbeat.exceptions import EventFormatError

MOMENT = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestIsoformat:
    def test_utc_with_milliseconds_and_z(self):
        assert isoformat(MOMENT) == "2024-01-01T00:00:00.000Z"

    def test_converts_other_offsets_to_utc(self):
        local = datetime(2024, 1, 1, 2, 30, tzinfo=timezone(timedelta(hours=2)))
        assert isoformat(local) == "2024-01-01T00:30:00.000Z"

    def test_naive_datetimes_are_treated_as_utc(self):
        assert isoformat(datetime(2024, 1, 1, 12, 0, 0, 123456)) == "2024-01-01T12:00:00.123Z"


class TestSampleValue:
    def test_values_stay_in_range_with_two_decimals(self):
        rng = random.Random(1234)
        for _ in range(2000):
            value = sample_value(rng)
            assert 0 <= value < 100
            assert round(value, 2) == value

    def test_value_just_below_ceiling_is_held_under_100(self):
        class AlmostOne(random.Random):
            def random(self) -> float:
                return 0.999999

        assert sample_value(AlmostOne()) == 99.99


class TestEventBuilders:
    def test_connected_event_payload(self):
        event = connected_event("SSE stream opened", MOMENT)

        assert event.type == CONNECTED
        assert event.payload == {
            "message": "SSE stream opened",
            "connectedAt": "2024-01-01T00:00:00.000Z",
        }

    def test_tick_event_payload(self):
        event = tick_event(3, MOMENT, random.Random(0))

        assert event.type == TICK
        assert event.payload["id"] == 3
        assert event.payload["timestamp"] == "2024-01-01T00:00:00.000Z"
        assert 0 <= event.payload["randomValue"] < 100

    def test_builders_default_to_current_time(self):
        before = datetime.now(timezone.utc) - timedelta(seconds=1)
        event = tick_event(1)
        stamped = datetime.fromisoformat(event.payload["timestamp"].replace("Z", "+00:00"))
        assert stamped >= before


class TestFormatEvent:
    def test_frame_layout(self):
        event = StreamEvent(
            type="tick",
            payload={"id": 3, "timestamp": "2024-01-01T00:00:00.000Z", "randomValue": 42.5},
        )

        assert format_event(event) == (
            "event: tick\n"
            'data: {"id":3,"timestamp":"2024-01-01T00:00:00.000Z","randomValue":42.5}\n'
            "\n"
        )

    def test_nested_payloads_round_trip_through_json(self):
        payload = {"nested": {"ok": True, "items": [1, "two", None]}}
        frame = format_event(StreamEvent(type="custom", payload=payload))

        data_line = frame.splitlines()[1]
        assert json.loads(data_line.removeprefix("data: ")) == payload

    def test_empty_payload(self):
        assert format_event(StreamEvent(type="ping")) == "event: ping\ndata: {}\n\n"

    def test_unserializable_payload_raises(self):
        event = StreamEvent(type="tick", payload={"when": object()})

        with pytest.raises(EventFormatError, match="'tick' is not JSON-serializable"):
            format_event(event)

    def test_nan_is_rejected(self):
        with pytest.raises(EventFormatError):
            format_event(StreamEvent(type="tick", payload={"randomValue": float("nan")}))
