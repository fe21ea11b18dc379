import json

from models.events import BroadcastEvent, EventType
from models.screenshot_record import ScreenshotRecord


def _record(**overrides) -> ScreenshotRecord:
    values = dict(id=7, timestamp=0.0, text="hello", answer="world", title="Greeting", thumbnail="data:x")
    values.update(overrides)
    return ScreenshotRecord(**values)


class TestBroadcastEvent:
    def test_process_start_payload(self) -> None:
        event = BroadcastEvent.process_start("proc_1")
        assert event.to_message() == {
            "type": "process_start",
            "payload": {"id": "proc_1", "status": "Processing image..."},
        }

    def test_ocr_complete_carries_text(self) -> None:
        event = BroadcastEvent.ocr_complete("proc_1", "hello")
        assert event.type is EventType.OCR_COMPLETE
        assert event.payload["text"] == "hello"
        assert event.payload["id"] == "proc_1"

    def test_process_complete_uses_record_id(self) -> None:
        event = BroadcastEvent.process_complete("proc_1", _record())
        assert event.payload["id"] == 7
        assert event.payload["process_id"] == "proc_1"
        assert event.payload["timestamp"] == "1970-01-01T00:00:00+00:00"
        assert event.payload["answer"] == "world"

    def test_process_error_without_record(self) -> None:
        event = BroadcastEvent.process_error("proc_1", "recognition", "OCR failed")
        assert event.payload == {"id": "proc_1", "stage": "recognition", "error": "OCR failed"}

    def test_process_error_with_record_keeps_content(self) -> None:
        event = BroadcastEvent.process_error("proc_1", "persistence", "disk full", _record(id=None))
        assert event.payload["text"] == "hello"
        assert event.payload["answer"] == "world"
        assert event.payload["title"] == "Greeting"
        assert "process_id" not in event.payload

    def test_history_snapshot(self) -> None:
        event = BroadcastEvent.history_snapshot([_record(id=2), _record(id=1)])
        assert [r["id"] for r in event.payload["records"]] == [2, 1]
        assert event.correlation_id is None

    def test_to_json_keeps_non_ascii(self) -> None:
        event = BroadcastEvent.ocr_complete("proc_1", "你好")
        assert "你好" in event.to_json()
        assert json.loads(event.to_json())["payload"]["text"] == "你好"
