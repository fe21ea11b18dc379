import asyncio
from unittest.mock import MagicMock
from urllib.parse import parse_qs

import httpx
import pytest

from services.baidu.text_recognizer import OCR_URL, TOKEN_URL, BaiduTextRecognizer
from services.errors import RecognitionError


def _reply(status: int, **kwargs):
    return status, kwargs


class BaiduStub:
    """Programmable stand-in for the token and OCR endpoints."""

    def __init__(self) -> None:
        self.token_responses = [_reply(200, json={"access_token": "tok-1", "expires_in": 2592000})]
        self.ocr_responses = [_reply(200, json={"words_result": [{"words": "hello"}, {"words": "world"}]})]
        self.token_calls = 0
        self.ocr_requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if str(request.url).startswith(TOKEN_URL):
            self.token_calls += 1
            status, kwargs = self.token_responses[min(self.token_calls, len(self.token_responses)) - 1]
        else:
            self.ocr_requests.append(request)
            status, kwargs = self.ocr_responses[min(len(self.ocr_requests), len(self.ocr_responses)) - 1]
        return httpx.Response(status, **kwargs)


def _recognize(stub: BaiduStub, image_b64: str = "QUJD", times: int = 1):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(stub.handler)) as http:
            recognizer = BaiduTextRecognizer("key", "secret", http)
            results = []
            for _ in range(times):
                results.append(await recognizer.recognize(image_b64))
            return results

    return asyncio.run(scenario())


class TestBaiduTextRecognizer:
    def test_joins_words_with_newlines(self) -> None:
        stub = BaiduStub()
        assert _recognize(stub) == ["hello\nworld"]

    def test_sends_token_and_stripped_image(self) -> None:
        stub = BaiduStub()
        _recognize(stub, image_b64="data:image/png;base64,QUJD")
        request = stub.ocr_requests[0]
        assert str(request.url).startswith(OCR_URL)
        assert request.url.params["access_token"] == "tok-1"
        form = parse_qs(request.content.decode())
        assert form["image"] == ["QUJD"]
        assert form["language_type"] == ["CHN_ENG"]

    def test_token_reused_across_calls(self) -> None:
        stub = BaiduStub()
        _recognize(stub, times=3)
        assert stub.token_calls == 1
        assert len(stub.ocr_requests) == 3

    def test_no_words_means_empty_transcript(self) -> None:
        stub = BaiduStub()
        stub.ocr_responses = [_reply(200, json={"words_result": []})]
        assert _recognize(stub) == [""]

    def test_vendor_error_code_raises(self) -> None:
        stub = BaiduStub()
        stub.ocr_responses = [_reply(200, json={"error_code": 17, "error_msg": "Open api daily request limit reached"})]
        with pytest.raises(RecognitionError, match="daily request limit") as exc_info:
            _recognize(stub)
        assert exc_info.value.status == 17

    def test_http_error_status_raises(self) -> None:
        stub = BaiduStub()
        stub.ocr_responses = [_reply(502, text="bad gateway")]
        with pytest.raises(RecognitionError) as exc_info:
            _recognize(stub)
        assert exc_info.value.status == 502

    def test_token_rejection_surfaces_as_recognition_error(self) -> None:
        stub = BaiduStub()
        stub.token_responses = [
            _reply(401, json={"error": "invalid_client", "error_description": "unknown client id"})
        ]
        with pytest.raises(RecognitionError, match="unknown client id"):
            _recognize(stub)
        assert stub.ocr_requests == []

    def test_invalid_token_code_invalidates_cache(self) -> None:
        stub = BaiduStub()
        stub.token_responses = [
            _reply(200, json={"access_token": "tok-1", "expires_in": 2592000}),
            _reply(200, json={"access_token": "tok-2", "expires_in": 2592000}),
        ]
        stub.ocr_responses = [
            _reply(200, json={"error_code": 110, "error_msg": "Access token invalid or no longer valid"}),
            _reply(200, json={"words_result": [{"words": "again"}]}),
        ]

        async def scenario():
            async with httpx.AsyncClient(transport=httpx.MockTransport(stub.handler)) as http:
                recognizer = BaiduTextRecognizer("key", "secret", http)
                with pytest.raises(RecognitionError):
                    await recognizer.recognize("QUJD")
                return await recognizer.recognize("QUJD")

        assert asyncio.run(scenario()) == "again"
        assert stub.token_calls == 2
        assert stub.ocr_requests[1].url.params["access_token"] == "tok-2"

    def test_missing_credentials_rejected(self) -> None:
        with pytest.raises(ValueError):
            BaiduTextRecognizer("", "secret", MagicMock())
