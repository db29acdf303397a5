"""
Session state for the signed-in user.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from backend.auth import AuthClient, AuthError, AuthUser
from backend.observable import Observable, Subscription

logger = logging.getLogger(__name__)


class AuthManager(Observable):
    """
    Holds the current user and the loading/error state of auth requests.

    Failed requests never raise; the message is exposed on `error_message`.
    """

    def __init__(self, auth_client: AuthClient, user: Optional[AuthUser] = None):
        self._auth_client = auth_client
        self.user: Optional[AuthUser] = user
        self.is_loading = False
        self.error_message: Optional[str] = None

    @property
    def current_uid(self) -> Optional[str]:
        return self.user.uid if self.user else None

    def add_state_listener(
        self, callback: Callable[[Optional[AuthUser]], None]
    ) -> Subscription:
        """Calls `callback` now and after every change of the current user."""

        def on_change(name, value):
            if name == "user":
                callback(value)

        subscription = self.observe(on_change)
        callback(self.user)
        return subscription

    def _run(self, request, email: str, password: str) -> bool:
        self.is_loading = True
        self.error_message = None
        try:
            self.user = request(email, password)
            return True
        except AuthError as e:
            logger.info("Auth request for %s failed: %s", email, e.code)
            self.error_message = str(e)
            return False
        finally:
            self.is_loading = False

    def sign_in(self, email: str, password: str) -> bool:
        return self._run(self._auth_client.sign_in, email, password)

    def sign_up(self, email: str, password: str) -> bool:
        return self._run(self._auth_client.sign_up, email, password)

    def sign_out(self) -> None:
        self.error_message = None
        self.user = None
