"""Google Calendar access: OAuth authorization, token storage and month fetches.

Authorization prefers a loopback callback on the first free port in
CALLBACK_PORTS. When none can be bound the session switches to the manual
flow for the rest of the process: the user visits the URL and pastes the
code back.
"""

import concurrent.futures
import logging
import os
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from deskdash.db.calendar_cache import month_key

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]

CALLBACK_PORTS = tuple(range(8080, 8090))
CALLBACK_PATH = "/callback"
AUTH_TIMEOUT = 300.0
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"

# Fields kept from each API event; the rest of the payload is dropped
EVENT_FIELDS = ("id", "summary", "start", "end", "htmlLink")

SUCCESS_PAGE = """<!DOCTYPE html>
<html>
<head><title>DeskDash - Authorization Successful</title></head>
<body style="font-family: sans-serif; text-align: center; padding-top: 4em;">
<h1>Authorization Successful</h1>
<p>DeskDash can now read your calendar.</p>
<p>You can close this window and return to the terminal.</p>
</body>
</html>
"""


class CalendarError(Exception):
    """Raised when calendar events cannot be retrieved."""


class AuthRequiredError(CalendarError):
    """Raised when no usable token exists or Google rejected it."""


class AuthFlowError(CalendarError):
    """Raised when an authorization attempt fails or times out."""


@dataclass(frozen=True)
class BoundListener:
    server: HTTPServer
    port: int


@dataclass(frozen=True)
class ListenerUnavailable:
    reason: str


ListenerResult = BoundListener | ListenerUnavailable


def try_bind(
    make_server: Callable[[int], HTTPServer], ports: Iterable[int]
) -> ListenerResult:
    """Bind the first port that accepts a listener."""
    last_error: OSError | None = None
    for port in ports:
        try:
            server = make_server(port)
        except OSError as e:
            logger.debug("Callback port %s unavailable: %s", port, e)
            last_error = e
            continue
        return BoundListener(server=server, port=server.server_port)
    reason = str(last_error) if last_error else "no callback ports configured"
    return ListenerUnavailable(reason=reason)


def month_bounds(month: date) -> tuple[datetime, datetime]:
    """Local-time start of the month and start of the following month."""
    first = month.replace(day=1)
    following = (first + timedelta(days=32)).replace(day=1)
    start = datetime(first.year, first.month, 1).astimezone()
    end = datetime(following.year, following.month, 1).astimezone()
    return start, end


def slim_event(item: dict) -> dict:
    return {name: item[name] for name in EVENT_FIELDS if name in item}


class _CallbackServer(HTTPServer):
    def __init__(self, port: int, session: "CalendarSession"):
        super().__init__(("localhost", port), _CallbackHandler)
        self.session = session


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            location = CALLBACK_PATH + (f"?{parsed.query}" if parsed.query else "")
            self.send_response(307)
            self.send_header("Location", location)
            self.end_headers()
            return

        params = parse_qs(parsed.query)
        error = params.get("error", [""])[0]
        if error:
            self._reply(400, f"OAuth error: {error}")
            self.server.session.fail_auth(AuthFlowError(f"oauth error: {error}"))
            return

        code = params.get("code", [""])[0]
        if not code:
            self._reply(400, "No authorization code received")
            self.server.session.fail_auth(
                AuthFlowError("no authorization code received")
            )
            return

        try:
            self.server.session.complete_auth(code)
        except AuthFlowError as e:
            self._reply(500, "Unable to complete authorization")
            self.server.session.fail_auth(e)
            return

        self._reply(200, SUCCESS_PAGE, content_type="text/html; charset=utf-8")

    def _reply(
        self, status: int, body: str, content_type: str = "text/plain; charset=utf-8"
    ) -> None:
        payload = body.encode()
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        _ = self.wfile.write(payload)

    def log_message(self, format: str, *args) -> None:
        logger.debug("Callback server: " + format, *args)


class CalendarSession:
    """Owns the OAuth flow, the stored token and event retrieval."""

    def __init__(
        self,
        credentials_file: Path,
        token_file: Path,
        ports: Iterable[int] = CALLBACK_PORTS,
        auth_timeout: float = AUTH_TIMEOUT,
    ):
        self.credentials_file = credentials_file
        self.token_file = token_file
        self._ports = tuple(ports)
        self._auth_timeout = auth_timeout
        self._manual_flow: bool | None = None
        self._flow: InstalledAppFlow | None = None
        self._completion: concurrent.futures.Future[None] | None = None

    @property
    def manual_flow(self) -> bool:
        return bool(self._manual_flow)

    def is_authorized(self) -> bool:
        """True when a stored token can be loaded. Validity is checked on fetch."""
        try:
            _ = self._load_credentials()
        except AuthRequiredError:
            return False
        return True

    def _load_credentials(self) -> Credentials:
        try:
            return Credentials.from_authorized_user_file(str(self.token_file), SCOPES)
        except (OSError, ValueError) as e:
            raise AuthRequiredError("authentication required") from e

    def save_token(self, credentials: Credentials) -> None:
        """Write the token readable by the owner only."""
        fd = os.open(self.token_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            _ = f.write(credentials.to_json())
        os.chmod(self.token_file, 0o600)

    def _new_flow(self, redirect_uri: str) -> InstalledAppFlow:
        if not self.credentials_file.exists():
            raise AuthFlowError(
                f"OAuth client credentials not found at {self.credentials_file}. "
                "Download credentials.json for a desktop client from the Google Cloud Console."
            )
        try:
            return InstalledAppFlow.from_client_secrets_file(
                str(self.credentials_file), SCOPES, redirect_uri=redirect_uri
            )
        except (OSError, ValueError) as e:
            raise AuthFlowError(f"unable to read client credentials: {e}") from e

    def start_auth(self) -> str:
        """Begin an authorization attempt and return the URL the user must visit.

        In automatic mode a callback server is started and wait_for_auth()
        blocks until it receives the redirect. In manual mode the caller
        passes the pasted code to complete_auth().
        """
        self.close()

        listener: ListenerResult | None = None
        if not self._manual_flow:
            listener = try_bind(lambda port: _CallbackServer(port, self), self._ports)
            if isinstance(listener, ListenerUnavailable):
                logger.warning(
                    "No callback port available (%s), using manual authorization",
                    listener.reason,
                )
                self._manual_flow = True
            else:
                self._manual_flow = False

        if isinstance(listener, BoundListener):
            redirect_uri = f"http://localhost:{listener.port}{CALLBACK_PATH}"
            try:
                self._flow = self._new_flow(redirect_uri)
            except AuthFlowError:
                listener.server.server_close()
                raise
            self._serve(listener)
        else:
            self._flow = self._new_flow(OOB_REDIRECT_URI)

        url, _ = self._flow.authorization_url(access_type="offline", prompt="consent")
        logger.info("Authorization started (manual=%s)", self._manual_flow)
        return url

    def _serve(self, listener: BoundListener) -> None:
        completion: concurrent.futures.Future[None] = concurrent.futures.Future()
        self._completion = completion
        threading.Thread(
            target=listener.server.serve_forever,
            kwargs={"poll_interval": 0.2},
            name="oauth-callback",
            daemon=True,
        ).start()
        threading.Thread(
            target=self._watch,
            args=(listener, completion),
            name="oauth-callback-watch",
            daemon=True,
        ).start()

    def _watch(
        self, listener: BoundListener, completion: concurrent.futures.Future[None]
    ) -> None:
        try:
            _ = completion.exception(timeout=self._auth_timeout)
        except TimeoutError:
            logger.warning("Authorization timed out after %ss", self._auth_timeout)
            self._settle(completion, AuthFlowError("authentication timeout"))
        finally:
            listener.server.shutdown()
            listener.server.server_close()

    @staticmethod
    def _settle(
        completion: concurrent.futures.Future[None], error: Exception | None = None
    ) -> None:
        # First outcome wins; later ones are dropped
        try:
            if error is None:
                completion.set_result(None)
            else:
                completion.set_exception(error)
        except concurrent.futures.InvalidStateError:
            logger.debug("Authorization already settled, dropping %r", error)

    def complete_auth(self, code: str) -> None:
        """Exchange an authorization code for a token and persist it."""
        if self._flow is None:
            raise AuthFlowError("authorization has not been started")
        try:
            _ = self._flow.fetch_token(code=code.strip())
        except Exception as e:
            logger.error("Token exchange failed: %s", e)
            raise AuthFlowError(f"unable to retrieve token: {e}") from e
        try:
            self.save_token(self._flow.credentials)
        except OSError as e:
            logger.error("Could not save token to %s: %s", self.token_file, e)
            raise AuthFlowError(f"unable to save token: {e}") from e
        logger.info("Authorization complete, token saved to %s", self.token_file)
        if self._completion is not None:
            self._settle(self._completion)

    def fail_auth(self, error: AuthFlowError) -> None:
        logger.warning("Authorization failed: %s", error)
        if self._completion is not None:
            self._settle(self._completion, error)

    def wait_for_auth(self, timeout: float | None = None) -> None:
        """Block until the callback server finishes the current attempt.

        Raises AuthFlowError when the attempt fails, times out or is replaced.
        """
        completion = self._completion
        if completion is None:
            raise AuthFlowError("automatic authorization is not running")
        try:
            completion.result(timeout=timeout if timeout is not None else self._auth_timeout)
        except TimeoutError as e:
            raise AuthFlowError("authentication timeout") from e

    def close(self) -> None:
        """Abandon the current attempt, stopping its callback server."""
        if self._completion is not None:
            self._settle(self._completion, AuthFlowError("authorization cancelled"))
        self._completion = None

    def _refreshed_credentials(self) -> Credentials:
        credentials = self._load_credentials()
        if credentials.valid:
            return credentials
        if not credentials.refresh_token:
            raise AuthRequiredError("stored token has expired")
        try:
            credentials.refresh(Request())
        except RefreshError as e:
            logger.warning("Token refresh rejected: %s", e)
            raise AuthRequiredError("token refresh failed") from e
        except TransportError as e:
            logger.error("Token refresh failed: %s", e)
            raise CalendarError(f"unable to refresh token: {e}") from e
        try:
            self.save_token(credentials)
        except OSError as e:
            logger.warning("Could not save refreshed token: %s", e)
        return credentials

    def fetch_month_events(self, month: date) -> list[dict]:
        """All events of the month containing ``month``, ordered by start time."""
        credentials = self._refreshed_credentials()
        start, end = month_bounds(month)
        key = month_key(month)

        items: list[dict] = []
        try:
            service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
            page_token: str | None = None
            while True:
                response = (
                    service.events()
                    .list(
                        calendarId="primary",
                        timeMin=start.isoformat(),
                        timeMax=end.isoformat(),
                        singleEvents=True,
                        orderBy="startTime",
                        showDeleted=False,
                        pageToken=page_token,
                    )
                    .execute()
                )
                items.extend(response.get("items", []))
                page_token = response.get("nextPageToken")
                if not page_token:
                    break
        except RefreshError as e:
            raise AuthRequiredError("token refresh failed") from e
        except HttpError as e:
            if e.resp.status == 401:
                raise AuthRequiredError("authentication required") from e
            logger.error("Calendar API error for %s: %s", key, e)
            raise CalendarError(f"unable to retrieve events for {key}: {e}") from e
        except (OSError, httplib2.HttpLib2Error, TransportError) as e:
            logger.error("Calendar request failed for %s: %s", key, e)
            raise CalendarError(f"unable to retrieve events for {key}: {e}") from e

        logger.info("Fetched %d events for %s", len(items), key)
        return [slim_event(item) for item in items]
