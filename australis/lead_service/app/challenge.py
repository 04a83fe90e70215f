"""Challenge-token providers (anti-automation proof attached to notifications)."""

from __future__ import annotations

from typing import Protocol


class ChallengeTokenProvider(Protocol):
    async def obtain_token(self, action: str) -> str | None: ...


class FormTokenProvider:
    """Hands back the token the browser obtained from the challenge script."""

    def __init__(self, token: str | None) -> None:
        cleaned = (token or "").strip()
        self._token = cleaned or None

    async def obtain_token(self, action: str) -> str | None:  # noqa: ARG002 - token already bound to the form action
        return self._token


class BypassTokenProvider:
    """Never produces a token; notifications go out without challenge proof."""

    async def obtain_token(self, action: str) -> str | None:  # noqa: ARG002
        return None


def provider_for_submission(token: str | None, *, bypass: bool) -> ChallengeTokenProvider:
    if bypass:
        return BypassTokenProvider()
    return FormTokenProvider(token)
