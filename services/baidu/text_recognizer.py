"""Baidu general-purpose OCR behind the TextRecognizer capability."""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

import httpx

from services.capabilities import TextRecognizer
from services.errors import CredentialError, RecognitionError
from services.token_cache import TokenCache
from utils.media_validation import strip_data_url_prefix

logger = logging.getLogger(__name__)

TOKEN_URL = "https://aip.baidubce.com/oauth/2.0/token"
OCR_URL = "https://aip.baidubce.com/rest/2.0/ocr/v1/general_basic"

# Access token invalid / expired; the cached token must be discarded.
TOKEN_ERROR_CODES = frozenset({110, 111})


class BaiduTextRecognizer(TextRecognizer):
    """Recognize text via Baidu OCR using a cached client-credentials token.

    Args:
        api_key: Baidu application API key (client_id).
        secret_key: Baidu application secret key (client_secret).
        http_client: Shared async HTTP client; its lifetime is owned by the caller.
        token_safety_margin: Seconds before expiry at which the token is refreshed.
        token_timeout: Upper bound in seconds for the token exchange.
    """

    name = "baidu"

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        http_client: httpx.AsyncClient,
        *,
        token_safety_margin: float = 60.0,
        token_timeout: float = 15.0,
        ocr_url: str = OCR_URL,
        token_url: str = TOKEN_URL,
    ) -> None:
        if not api_key or not secret_key:
            raise ValueError("Baidu OCR requires both an API key and a secret key.")
        self._api_key = api_key
        self._secret_key = secret_key
        self._http = http_client
        self._ocr_url = ocr_url
        self._token_url = token_url
        self.tokens = TokenCache(
            self._exchange_credentials,
            safety_margin=token_safety_margin,
            timeout=token_timeout,
        )

    async def _exchange_credentials(self) -> Tuple[str, float]:
        try:
            resp = await self._http.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._api_key,
                    "client_secret": self._secret_key,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise CredentialError(f"Token request failed: {exc}") from exc

        body = _json_or_error(resp, CredentialError)
        if body.get("error") or body.get("error_code"):
            detail = body.get("error_description") or body.get("error_msg") or body.get("error")
            raise CredentialError(f"Token exchange rejected: {detail}")
        if resp.status_code != httpx.codes.OK:
            raise CredentialError(f"Token endpoint returned HTTP {resp.status_code}")

        token = body.get("access_token") or ""
        ttl = float(body.get("expires_in") or 0)
        return token, ttl

    async def recognize(self, image_base64: str) -> str:
        """Return recognized lines joined with newlines.

        Raises:
            RecognitionError: On token, transport, HTTP, or vendor-level failure.
        """
        try:
            token = await self.tokens.get_token()
        except CredentialError as exc:
            raise RecognitionError(f"Could not obtain Baidu access token: {exc}") from exc

        try:
            resp = await self._http.post(
                self._ocr_url,
                params={"access_token": token},
                data={"image": strip_data_url_prefix(image_base64), "language_type": "CHN_ENG"},
            )
        except httpx.HTTPError as exc:
            raise RecognitionError(f"OCR request failed: {exc}") from exc

        if resp.status_code != httpx.codes.OK:
            raise RecognitionError(f"OCR API returned an error: {resp.text[:200]}", status=resp.status_code)

        body = _json_or_error(resp, RecognitionError)
        error_code = body.get("error_code")
        if error_code:
            if int(error_code) in TOKEN_ERROR_CODES:
                logger.warning("Baidu rejected the cached access token (code %s); invalidating", error_code)
                self.tokens.invalidate()
            raise RecognitionError(body.get("error_msg") or "OCR API returned an error", status=int(error_code))

        lines = [item.get("words", "") for item in body.get("words_result") or []]
        return "\n".join(lines)


def _json_or_error(resp: httpx.Response, error_cls: type) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError as exc:
        raise error_cls(f"Could not parse response from {resp.request.url.host}: {exc}") from exc
    if not isinstance(body, dict):
        raise error_cls("Unexpected response shape from upstream")
    return body
