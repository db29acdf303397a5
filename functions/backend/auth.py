"""
Authentication clients: Firebase Auth (email/password through the Identity
Toolkit REST API, ID tokens verified with firebase_admin) and an in-memory
implementation for tests.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

import requests
from firebase_admin import auth as firebase_auth

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{method}"
REQUEST_TIMEOUT_SECONDS = 10
MIN_PASSWORD_LENGTH = 6

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ERROR_MESSAGES = {
    "EMAIL_EXISTS": "The email address is already in use by another account.",
    "EMAIL_NOT_FOUND": "There is no user record corresponding to this email.",
    "INVALID_PASSWORD": "The password is invalid.",
    "INVALID_LOGIN_CREDENTIALS": "The email or password is incorrect.",
    "INVALID_EMAIL": "The email address is badly formatted.",
    "WEAK_PASSWORD": "The password must be 6 characters long or more.",
    "USER_DISABLED": "The user account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Try again later.",
    "INVALID_ID_TOKEN": "The session is no longer valid. Sign in again.",
    "NETWORK_REQUEST_FAILED": "Could not reach the sign-in service. Check your connection.",
    "UNEXPECTED_RESPONSE": "The sign-in service returned an unexpected response.",
}


class AuthError(Exception):
    """An authentication failure carrying the backend's error code."""

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        super().__init__(message or ERROR_MESSAGES.get(code, code))


@dataclass
class AuthUser:
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None


class AuthClient(Protocol):
    def sign_in(self, email: str, password: str) -> AuthUser:
        ...

    def sign_up(self, email: str, password: str) -> AuthUser:
        ...

    def verify_token(self, id_token: str) -> AuthUser:
        ...


class FirebaseAuthClient:
    """Email/password auth against a Firebase project."""

    def __init__(self, api_key: str, session: Optional[requests.Session] = None):
        if not api_key:
            raise ValueError("A Firebase web API key is required for sign-in")
        self.api_key = api_key
        self.session = session or requests.Session()

    def _call(self, method: str, payload: dict) -> dict:
        try:
            response = self.session.post(
                IDENTITY_TOOLKIT_URL.format(method=method),
                params={"key": self.api_key},
                json=payload,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise AuthError("NETWORK_REQUEST_FAILED") from e
        try:
            body = response.json() if response.content else {}
        except ValueError as e:
            raise AuthError("UNEXPECTED_RESPONSE") from e
        if response.status_code != 200:
            message = (body.get("error") or {}).get("message", "UNKNOWN")
            # Some codes carry detail after the code, e.g. "WEAK_PASSWORD : ...".
            code = message.split(":")[0].strip()
            raise AuthError(code)
        return body

    def _to_user(self, body: dict) -> AuthUser:
        return AuthUser(
            uid=body["localId"],
            email=body.get("email"),
            display_name=body.get("displayName") or None,
            id_token=body.get("idToken"),
            refresh_token=body.get("refreshToken"),
        )

    def sign_in(self, email: str, password: str) -> AuthUser:
        body = self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._to_user(body)

    def sign_up(self, email: str, password: str) -> AuthUser:
        body = self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._to_user(body)

    def verify_token(self, id_token: str) -> AuthUser:
        try:
            decoded = firebase_auth.verify_id_token(id_token)
        except (ValueError, firebase_auth.InvalidIdTokenError) as e:
            raise AuthError("INVALID_ID_TOKEN") from e
        return AuthUser(
            uid=decoded["uid"],
            email=decoded.get("email"),
            display_name=decoded.get("name"),
            id_token=id_token,
        )


class InMemoryAuthClient:
    """Simple in-memory account registry for development and tests."""

    def __init__(self):
        self.accounts: dict[str, tuple[str, str]] = {}
        self.tokens: dict[str, AuthUser] = {}

    def _issue(self, uid: str, email: str) -> AuthUser:
        user = AuthUser(uid=uid, email=email, id_token=uuid.uuid4().hex)
        self.tokens[user.id_token] = user
        return user

    def sign_in(self, email: str, password: str) -> AuthUser:
        account = self.accounts.get(email)
        if account is None:
            raise AuthError("EMAIL_NOT_FOUND")
        stored_password, uid = account
        if stored_password != password:
            raise AuthError("INVALID_PASSWORD")
        return self._issue(uid, email)

    def sign_up(self, email: str, password: str) -> AuthUser:
        if not email or not _EMAIL_PATTERN.match(email):
            raise AuthError("INVALID_EMAIL")
        if email in self.accounts:
            raise AuthError("EMAIL_EXISTS")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError("WEAK_PASSWORD")
        uid = uuid.uuid4().hex[:28]
        self.accounts[email] = (password, uid)
        return self._issue(uid, email)

    def verify_token(self, id_token: str) -> AuthUser:
        user = self.tokens.get(id_token)
        if user is None:
            raise AuthError("INVALID_ID_TOKEN")
        return user

    def reset(self) -> None:
        self.accounts.clear()
        self.tokens.clear()
