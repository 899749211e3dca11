"""Twitter REST adapter.

Small wrapper around the v1.1 endpoints the app needs outside the stream:
resolving handles for new subscriptions and fetching a single post in
extended mode.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import httpx

DEFAULT_API_URL = "https://api.twitter.com/1.1"


def get_error(response: Any) -> dict[str, Any]:
    """Return the first ``{code, message}`` error of an API response body."""

    errors = response.get("errors") if isinstance(response, dict) else None
    if not errors:
        return {"code": None, "message": None}
    first = errors[0]
    return {"code": first.get("code"), "message": first.get("message")}


class TwitterApiError(RuntimeError):
    def __init__(self, status: int, code: Optional[int], message: Optional[str]) -> None:
        self.status = status
        self.code = code
        super().__init__(f"Twitter API error {status} (code {code}): {message}")


class TwitterApi:
    """Async client for the handful of REST calls we make."""

    def __init__(
        self,
        bearer_token: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._bearer_token = bearer_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def user_lookup(self, screen_names: Sequence[str]) -> list[dict[str, Any]]:
        names = ",".join(name.lstrip("@") for name in screen_names)
        return await self._request("POST", "users/lookup.json", data={"screen_name": names})

    async def show_tweet(self, post_id: str) -> dict[str, Any]:
        return await self._request("GET", f"statuses/show/{post_id}.json", params={"tweet_mode": "extended"})

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self._base_url}/{path}"
        headers = {"Authorization": f"Bearer {self._bearer_token}"}
        if self._client is not None:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, headers=headers, **kwargs)

        try:
            body = response.json()
        except ValueError:
            body = None
        if response.status_code >= 400:
            error = get_error(body)
            raise TwitterApiError(response.status_code, error["code"], error["message"] or response.reason_phrase)
        return body
