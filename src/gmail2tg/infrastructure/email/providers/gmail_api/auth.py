from __future__ import annotations

from pathlib import Path
from typing import Sequence

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from loguru import logger

from gmail2tg.domain.errors import CredentialsError

# modify is needed to mark messages read and add the marker label
GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]


class GmailAuthenticator:
    """
    Responsible ONLY for producing valid OAuth credentials for the Gmail API.
    Never opens a browser: the consent flow lives in the gmail2tg-authorize
    CLI, and a worker without a usable token must fail at startup.
    """

    def __init__(
        self,
        credentials_path: str | Path,
        token_path: str | Path,
        scopes: Sequence[str] = GMAIL_SCOPES,
    ) -> None:
        self.credentials_path = Path(credentials_path)
        self.token_path = Path(token_path)
        self.scopes = list(scopes)

    def load(self) -> Credentials:
        if not self.credentials_path.exists():
            raise CredentialsError(f"OAuth client file not found: {self.credentials_path}")
        if not self.token_path.exists():
            raise CredentialsError(
                f"Token file not found: {self.token_path} (run gmail2tg-authorize first)"
            )

        try:
            creds = Credentials.from_authorized_user_file(str(self.token_path), self.scopes)
        except (ValueError, OSError) as e:
            raise CredentialsError(f"Invalid token file {self.token_path}: {e}") from e

        if creds.valid:
            logger.info("Gmail: using cached OAuth token")
            return creds

        if not (creds.expired and creds.refresh_token):
            raise CredentialsError("Gmail token is invalid and cannot be refreshed")

        logger.info("Gmail: refreshing expired OAuth token...")
        try:
            creds.refresh(Request())
        except RefreshError as e:
            raise CredentialsError(f"Gmail token refresh failed: {e}") from e

        try:
            self.token_path.write_text(creds.to_json(), encoding="utf-8")
            logger.info(f"Gmail: refreshed token saved to {self.token_path}")
        except OSError as e:
            # read-only secret mounts; the in-memory token is still good
            logger.warning(f"Could not save refreshed token to {self.token_path}: {e}")

        return creds
