"""Identity lookups against third-party OAuth providers."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v1/userinfo"


class OAuthProviderError(RuntimeError):
    """Raised when the provider rejects the token or cannot be reached."""


@dataclass(slots=True)
class ProviderProfile:
    email: str
    name: str
    picture: str | None = None


async def fetch_google_profile(access_token: str) -> ProviderProfile:
    """Resolve a Google OAuth access token into the account's profile."""

    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(
                GOOGLE_USERINFO_URL,
                params={"alt": "json", "access_token": access_token},
                timeout=10.0,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise OAuthProviderError("Invalid token") from exc
        except httpx.RequestError as exc:
            raise OAuthProviderError(f"Unable to reach Google: {exc}") from exc
        except ValueError as exc:
            raise OAuthProviderError("Invalid response from Google") from exc

    email = data.get("email")
    if not email:
        raise OAuthProviderError("Google account has no e-mail address")
    return ProviderProfile(
        email=email,
        name=data.get("name") or email.split("@", 1)[0],
        picture=data.get("picture"),
    )


__all__ = ["OAuthProviderError", "ProviderProfile", "fetch_google_profile"]
