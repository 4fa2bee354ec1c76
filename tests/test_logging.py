"""Tests for JSONL guidance logging."""

from __future__ import annotations

import json

from anchor_guidance.metrics.logging import GuidanceLogWriter, load_guidance_requests
from anchor_guidance.schemas import GuidanceRequest
from anchor_guidance.utils.config import LOG_VERSION


class TestGuidanceLogWriter:
    """Tests for the request/response writer."""

    def test_writes_one_line_per_poll(self, tmp_path, engine):
        path = tmp_path / "logs" / "polls.jsonl"
        request = GuidanceRequest(target_object_id="obj-1", current_heading=45.0)

        with GuidanceLogWriter(path) as writer:
            writer.write(request, engine.guide(request))
            writer.write(request, engine.guide(request))
            assert writer.count == 2

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        record = json.loads(lines[0])
        assert record["logVersion"] == LOG_VERSION
        assert record["request"]["currentHeading"] == 45.0
        assert record["response"]["phase"] == "FAR"

    def test_appends(self, tmp_path, engine):
        path = tmp_path / "polls.jsonl"
        request = GuidanceRequest(target_object_id="obj-1")
        for _ in range(2):
            with GuidanceLogWriter(path) as writer:
                writer.write(request, engine.guide(request))
        assert len(path.read_text().splitlines()) == 2


class TestLoadGuidanceRequests:
    """Tests for reading requests back."""

    def test_reads_log_records(self, tmp_path, engine):
        path = tmp_path / "polls.jsonl"
        request = GuidanceRequest(target_object_id="obj-1", session_id="phone")
        with GuidanceLogWriter(path) as writer:
            writer.write(request, engine.guide(request))

        loaded = list(load_guidance_requests(path))
        assert loaded == [request]

    def test_skips_bad_lines(self, tmp_path, caplog):
        path = tmp_path / "requests.jsonl"
        path.write_text("\n".join([
            json.dumps({"targetObjectId": "a"}),
            "{broken",
            json.dumps({"currentHeading": 10}),
            json.dumps({"targetObjectId": "b"}),
        ]))
        loaded = list(load_guidance_requests(path))
        assert [r.target_object_id for r in loaded] == ["a", "b"]
        assert "[REPLAY] Skipping line 2" in caplog.text
