"""One-shot Gmail OAuth consent flow - writes the token file the worker uses."""

from __future__ import annotations

import argparse
from pathlib import Path

from google_auth_oauthlib.flow import InstalledAppFlow

from gmail2tg.infrastructure.email.providers.gmail_api.auth import GMAIL_SCOPES


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Authorize gmail2tg against a Gmail account")
    parser.add_argument("--credentials", default="credentials.json", help="OAuth client file (Desktop app)")
    parser.add_argument("--token", default="token.json", help="Where to write the authorized token")
    parser.add_argument("--port", type=int, default=0, help="Local redirect port (0 = any free port)")
    parser.add_argument("--no-browser", action="store_true", help="Print the consent URL instead of opening it")
    args = parser.parse_args(argv)

    creds_path = Path(args.credentials)
    if not creds_path.exists():
        print(f"ERROR: OAuth client file not found: {creds_path}")
        print()
        print("  To set up Gmail API access:")
        print("  1. Go to https://console.cloud.google.com")
        print("  2. Enable the Gmail API")
        print("  3. Credentials → Create OAuth 2.0 Client ID (Desktop app)")
        print(f"  4. Download JSON → save as {creds_path}")
        return 1

    flow = InstalledAppFlow.from_client_secrets_file(str(creds_path), GMAIL_SCOPES)
    creds = flow.run_local_server(
        port=args.port,
        open_browser=not args.no_browser,
        access_type="offline",
        prompt="consent",
    )

    token_path = Path(args.token)
    token_path.write_text(creds.to_json(), encoding="utf-8")
    print(f"Token saved to {token_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
