"""Bearer token checks against the scopes an API operation requires."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

__all__ = [
    "AuthError",
    "NoAuthHeaderError",
    "InvalidAuthHeaderError",
    "ClaimsInvalidError",
    "JWSValidator",
    "JWT_CLAIMS_CONTEXT_KEY",
    "PERMISSIONS_CLAIM",
    "BEARER_SCHEME_NAME",
    "get_jws_from_request",
    "get_claims_from_token",
    "check_token_claims",
    "authenticate",
]

JWT_CLAIMS_CONTEXT_KEY = "jwt_claims"
PERMISSIONS_CLAIM = "perms"
BEARER_SCHEME_NAME = "BearerAuth"
_BEARER_PREFIX = "Bearer "


class AuthError(Exception):
    """Raised when a request cannot be authenticated."""

    default_message = "authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NoAuthHeaderError(AuthError):
    """The request has no Authorization header."""

    default_message = "Authorization header is missing"


class InvalidAuthHeaderError(AuthError):
    """The Authorization header is not of the form "Bearer <token>"."""

    default_message = "Authorization header is malformed"


class ClaimsInvalidError(AuthError):
    """The token lacks a scope the operation requires."""

    default_message = "Provided claims do not match expected scopes"


class JWSValidator(Protocol):
    """Checks a signed token and returns its claims."""

    def validate_jws(self, jws: str) -> Mapping[str, Any]:
        ...


def _wrap(prefix: str, exc: AuthError) -> AuthError:
    return type(exc)(f"{prefix}: {exc}")


def get_jws_from_request(headers: Mapping[str, str]) -> str:
    """Extract the token from an "Authorization: Bearer <token>" header."""
    value = next(
        (v for k, v in headers.items() if k.lower() == "authorization" and v),
        "",
    )
    if not value:
        raise NoAuthHeaderError()
    if not value.startswith(_BEARER_PREFIX):
        raise InvalidAuthHeaderError()
    return value[len(_BEARER_PREFIX):]


def get_claims_from_token(token: Mapping[str, Any]) -> list[str]:
    """Return the permission claims stored in the token, empty if there are none."""
    if PERMISSIONS_CLAIM not in token:
        return []
    raw = token[PERMISSIONS_CLAIM]
    if not isinstance(raw, list):
        raise AuthError(f"'{PERMISSIONS_CLAIM}' claim is unexpected type'")
    for index, claim in enumerate(raw):
        if not isinstance(claim, str):
            raise AuthError(f"{PERMISSIONS_CLAIM}[{index}] is not a string")
    return list(raw)


def check_token_claims(expected_claims: Iterable[str], token: Mapping[str, Any]) -> None:
    """Raise ClaimsInvalidError unless every expected claim is in the token."""
    try:
        claims = set(get_claims_from_token(token))
    except AuthError as exc:
        raise _wrap("getting claims from token", exc) from exc
    if any(claim not in claims for claim in expected_claims):
        raise ClaimsInvalidError()


def authenticate(
    validator: JWSValidator,
    scheme_name: str,
    headers: Mapping[str, str],
    scopes: Iterable[str],
) -> Mapping[str, Any]:
    """Validate the request's bearer token against the scopes and return its claims."""
    if scheme_name != BEARER_SCHEME_NAME:
        raise AuthError(f"security scheme {scheme_name} != '{BEARER_SCHEME_NAME}'")
    try:
        jws = get_jws_from_request(headers)
    except AuthError as exc:
        raise _wrap("getting jws", exc) from exc
    try:
        token = validator.validate_jws(jws)
    except AuthError as exc:
        raise _wrap("validating JWS", exc) from exc
    except Exception as exc:
        raise AuthError(f"validating JWS: {exc}") from exc
    try:
        check_token_claims(scopes, token)
    except AuthError as exc:
        raise _wrap("token claims don't match", exc) from exc
    return token