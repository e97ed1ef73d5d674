"""Authentication helpers for Gmail API."""

from __future__ import annotations

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build, Resource

from .constants import CONFIG_DIR, CREDENTIALS_PATH, SCOPES, TOKEN_PATH
from .display import console
from .errors import MailboxError
from .gmail_client import MailboxClient


def service_from_token(access_token: str) -> Resource:
    """Build a Gmail service from an already-issued bearer token.

    The token is used as-is; it is never refreshed.
    """
    creds = Credentials(token=access_token)
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def get_gmail_service() -> Resource:
    """Return an authenticated Gmail API service object.

    Loads cached token from TOKEN_PATH if available.  When the token is
    expired it is silently refreshed.  If no token exists, an OAuth
    browser flow is launched (requires credentials.json at
    CREDENTIALS_PATH).
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    creds: Credentials | None = None

    if TOKEN_PATH.exists():
        creds = Credentials.from_authorized_user_file(str(TOKEN_PATH), SCOPES)

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    elif not creds or not creds.valid:
        if not CREDENTIALS_PATH.exists():
            raise FileNotFoundError(
                f"Credentials file not found at {CREDENTIALS_PATH}.\n"
                "Download your OAuth client credentials from the Google Cloud Console "
                "and save them as:\n"
                f"  {CREDENTIALS_PATH}"
            )
        flow = InstalledAppFlow.from_client_secrets_file(str(CREDENTIALS_PATH), SCOPES)
        creds = flow.run_local_server(port=0)

    TOKEN_PATH.write_text(creds.to_json())

    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def check_auth() -> bool:
    """Test whether Gmail authentication is working.

    Returns True when the mailbox profile can be read, False otherwise.
    """
    try:
        profile = MailboxClient(get_gmail_service()).get_profile()
    except (FileNotFoundError, RefreshError, MailboxError) as exc:
        console.print(f"[red]Authentication failed:[/red] {exc}")
        return False
    console.print(f"[green]Authenticated as {profile['emailAddress']}[/green]")
    return True
