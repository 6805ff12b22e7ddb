"""
Request builder for the developer console.

Holds one editable PostmanRequest, validates it on every change, and
turns it into the relay's request descriptor at send time: enabled
params go to the query string, enabled headers to the header map, and
the auth variant into whichever of the two its type asks for.
"""

import re
from typing import Literal
from urllib.parse import urlencode, urlsplit, urlunsplit

from ..config import RelaySettings
from ..schemas.postman import (
    ApiKeyAuth,
    AuthType,
    BearerAuth,
    KeyValueRow,
    NoAuth,
    PostmanAuth,
    PostmanRequest,
)
from ..schemas.proxy import ProxyRequestDescriptor
from .validation import JsonCheck, UrlCheck, format_json, validate_json, validate_url

BuilderTab = Literal["params", "headers", "auth", "body"]
RowTable = Literal["params", "headers"]

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


def enabled_pairs(rows: list[KeyValueRow]) -> list[tuple[str, str]]:
    """Enabled rows with a non-blank key, in table order."""
    pairs = []
    for row in rows:
        if not row.enabled:
            continue
        key = row.key.strip()
        if key:
            pairs.append((key, row.value or ""))
    return pairs


def materialize_auth(auth: PostmanAuth) -> tuple[dict[str, str], list[tuple[str, str]]]:
    """
    Turn an auth variant into headers and query parameters.

    Returns:
        Tuple of (headers to add, query pairs to append)

    Raises:
        TypeError: Unknown auth variant
    """
    if isinstance(auth, NoAuth):
        return {}, []
    if isinstance(auth, BearerAuth):
        token = auth.token.strip()
        return ({"Authorization": f"Bearer {token}"} if token else {}), []
    if isinstance(auth, ApiKeyAuth):
        name = auth.key_name.strip()
        if not name:
            return {}, []
        if auth.location == "query":
            return {}, [(name, auth.key_value or "")]
        return {name: auth.key_value or ""}, []
    raise TypeError(f"Unsupported auth type: {type(auth).__name__}")


def build_url(raw_url: str, params: list[KeyValueRow], auth: PostmanAuth) -> str:
    """
    Append enabled params and a query-side API key to a URL.

    Relative URLs stay relative (path, query and fragment only).

    Example:
        >>> build_url("/api/mock/users", [KeyValueRow(key="q", value="a b")], NoAuth())
        '/api/mock/users?q=a+b'
    """
    text = str(raw_url or "").strip()
    is_absolute = bool(_ABSOLUTE_URL.match(text))
    if not is_absolute and not text.startswith("/"):
        text = "/" + text

    parts = urlsplit(text)
    pairs = enabled_pairs(params) + materialize_auth(auth)[1]
    query = parts.query
    if pairs:
        extra = urlencode(pairs)
        query = f"{query}&{extra}" if query else extra

    if is_absolute:
        return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", query, parts.fragment))
    return urlunsplit(("", "", parts.path, query, parts.fragment))


def build_headers(
    rows: list[KeyValueRow],
    auth: PostmanAuth,
    method: str,
    body_text: str,
) -> dict[str, str]:
    """
    Header map for a request: enabled rows, then auth.

    A JSON content type is added for non-GET requests with a body when
    none was set.
    """
    headers = dict(enabled_pairs(rows))
    headers.update(materialize_auth(auth)[0])

    has_content_type = any(k.lower() == "content-type" for k in headers)
    if not has_content_type and method != "GET" and body_text.strip():
        headers["Content-Type"] = "application/json"
    return headers


def to_descriptor(request: PostmanRequest) -> ProxyRequestDescriptor:
    """Convert an editable request into what the relay forwards."""
    body = request.body_text if request.method != "GET" and request.body_text else None
    return ProxyRequestDescriptor(
        method=request.method,
        url=build_url(request.url, request.params, request.auth),
        headers=build_headers(request.headers, request.auth, request.method, request.body_text),
        body_text=body,
    )


def default_auth(auth_type: AuthType) -> PostmanAuth:
    if auth_type == "none":
        return NoAuth()
    if auth_type == "bearer":
        return BearerAuth(token="")
    if auth_type == "apikey":
        return ApiKeyAuth(key_name="X-API-Key", key_value="", location="header")
    raise ValueError(f"Unknown auth type: {auth_type}")


class RequestBuilder:
    """
    Editable request state behind the console's request form.

    Validation is recomputed from the current request on every access,
    never cached, so ``can_send`` cannot go stale.
    """

    def __init__(self, settings: RelaySettings, request: PostmanRequest | None = None):
        self.settings = settings
        self.request = request.model_copy(deep=True) if request else PostmanRequest(url="/api/mock/users")
        self.tab: BuilderTab = "params"
        self.json_error: str | None = None
        self.sending = False

    # Validation

    @property
    def url_check(self) -> UrlCheck:
        return validate_url(self.request.url, self.settings)

    @property
    def body_check(self) -> JsonCheck:
        return validate_json(self.request.body_text)

    @property
    def inline_json_error(self) -> str | None:
        check = self.body_check
        return self.json_error or (None if check.ok else check.error)

    @property
    def can_send(self) -> bool:
        return self.url_check.ok and self.body_check.ok and not self.sending

    # Editing

    def load(self, request: PostmanRequest) -> None:
        """Replace the request, e.g. from history or a saved entry."""
        self.request = request.model_copy(deep=True)
        self.json_error = None

    def set_method(self, method: str) -> None:
        method = str(method).upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported method: {method}")
        self.request.method = method

    def set_url(self, url: str) -> UrlCheck:
        self.request.url = url
        return self.url_check

    def set_body(self, body_text: str) -> None:
        self.json_error = None
        self.request.body_text = body_text

    def set_auth_type(self, auth_type: AuthType) -> None:
        self.request.auth = default_auth(auth_type)

    def select_tab(self, tab: BuilderTab) -> None:
        self.tab = tab

    def _rows(self, table: RowTable) -> list[KeyValueRow]:
        if table == "params":
            return self.request.params
        if table == "headers":
            return self.request.headers
        raise ValueError(f"Unknown table: {table}")

    def add_row(self, table: RowTable, key: str = "", value: str = "", enabled: bool = True) -> None:
        self._rows(table).append(KeyValueRow(key=key, value=value, enabled=enabled))

    def update_row(self, table: RowTable, index: int, key: str | None = None, value: str | None = None) -> None:
        row = self._rows(table)[index]
        if key is not None:
            row.key = key
        if value is not None:
            row.value = value

    def toggle_row(self, table: RowTable, index: int, enabled: bool | None = None) -> None:
        """Enable or disable a row; the row itself is kept."""
        row = self._rows(table)[index]
        row.enabled = (not row.enabled) if enabled is None else enabled

    def remove_row(self, table: RowTable, index: int) -> None:
        rows = self._rows(table)
        del rows[index]
        if not rows:
            rows.append(KeyValueRow())

    # Body actions

    def format_body(self) -> bool:
        result = format_json(self.request.body_text)
        if not result.ok:
            self.json_error = result.error
            return False
        self.json_error = None
        self.request.body_text = result.formatted
        return True

    def validate_body(self) -> bool:
        check = self.body_check
        self.json_error = None if check.ok else check.error
        return check.ok

    # Send

    def prepare_send(self) -> ProxyRequestDescriptor | None:
        """
        Re-validate synchronously and build the descriptor.

        Returns None when the URL or body is invalid; an invalid body also
        brings the body tab into view with the parser's message.
        """
        if not self.url_check.ok:
            return None

        check = validate_json(self.request.body_text)
        if not check.ok:
            self.json_error = check.error
            self.tab = "body"
            return None

        self.json_error = None
        return to_descriptor(self.request)


def _example(example_id: str, name: str, description: str, **request) -> dict:
    return {
        "id": example_id,
        "name": name,
        "description": description,
        "request": PostmanRequest(**request),
    }


EXAMPLES = [
    _example(
        "ex_users_get", "Basics: List users",
        "Simple GET returning a JSON list of mock users.",
        method="GET", url="/api/mock/users",
    ),
    _example(
        "ex_users_post_ok", "Basics: Create user (201)",
        "POST a JSON body to create a user; expect 201.",
        method="POST", url="/api/mock/users",
        body_text='{\n  "name": "Aisha",\n  "email": "aisha@example.com"\n}',
    ),
    _example(
        "ex_users_post_bad", "Basics: Create user (400 invalid payload)",
        "Same POST with an invalid payload to read a 400 error.",
        method="POST", url="/api/mock/users",
        body_text='{\n  "name": "",\n  "email": "not-an-email"\n}',
    ),
    _example(
        "ex_secure_ok", "Auth: Secure endpoint (TRAINING_TOKEN)",
        "Bearer token in the Authorization header; expect 200.",
        method="GET", url="/api/mock/secure", auth=BearerAuth(token="TRAINING_TOKEN"),
    ),
    _example(
        "ex_secure_fail", "Auth: Secure endpoint (missing token -> 401)",
        "Without a token the endpoint answers 401.",
        method="GET", url="/api/mock/secure",
    ),
    _example(
        "ex_auth_login", "Auth flow: Login",
        "Mock login returning an access token and a refresh token.",
        method="POST", url="/api/mock/auth/login",
        body_text='{\n  "email": "student@khidmaty.ly",\n  "password": "password123"\n}',
    ),
    _example(
        "ex_auth_profile_ok", "Auth flow: Profile (TRAINING_TOKEN)",
        "Read the student's profile with the access token from login.",
        method="GET", url="/api/mock/auth/profile", auth=BearerAuth(token="TRAINING_TOKEN"),
    ),
    _example(
        "ex_auth_refresh", "Auth flow: Refresh token",
        "Trade the refresh token for a new access token.",
        method="POST", url="/api/mock/auth/refresh",
        body_text='{\n  "refreshToken": "TRAINING_REFRESH_TOKEN"\n}',
    ),
    _example(
        "ex_auth_profile_expired", "Auth flow: Profile (expired token -> 401)",
        "EXPIRED_TOKEN yields 401 with a token expired message.",
        method="GET", url="/api/mock/auth/profile", auth=BearerAuth(token="EXPIRED_TOKEN"),
    ),
    _example(
        "ex_apikey_header_ok", "Auth: API key in header (X-API-Key)",
        "API key sent as the X-API-Key header.",
        method="GET", url="/api/mock/apikey/header",
        auth=ApiKeyAuth(key_name="X-API-Key", key_value="LIBYA123", location="header"),
    ),
    _example(
        "ex_apikey_query_ok", "Auth: API key in query (api_key)",
        "API key sent in the query string as api_key.",
        method="GET", url="/api/mock/apikey/query",
        auth=ApiKeyAuth(key_name="api_key", key_value="LIBYA123", location="query"),
    ),
    _example(
        "ex_echo", "Debug: Echo (params + headers + JSON body)",
        "Echoes back the query, safe headers and body that were sent.",
        method="POST", url="/api/mock/echo",
        params=[KeyValueRow(key="city", value="Tripoli"), KeyValueRow(key="lang", value="ar"), KeyValueRow()],
        headers=[KeyValueRow(key="X-Demo", value="Khidmaty"), KeyValueRow()],
        body_text='{\n  "message": "hello"\n}',
    ),
    _example(
        "ex_delay", "HTTP: Delay 800ms",
        "Waits about 800ms before answering; watch timeMs.",
        method="GET", url="/api/mock/delay", params=[KeyValueRow(key="ms", value="800"), KeyValueRow()],
    ),
    _example(
        "ex_status_500", "HTTP: Custom status (500 JSON)",
        "Returns a 500 with a JSON body.",
        method="GET", url="/api/mock/status",
        params=[KeyValueRow(key="code", value="500"), KeyValueRow(key="message", value="Server error example"), KeyValueRow()],
    ),
    _example(
        "ex_redirect", "HTTP: Redirect (not followed)",
        "The relay returns the 302 itself instead of following it.",
        method="GET", url="/api/mock/redirect",
        params=[KeyValueRow(key="to", value="/api/mock/users"), KeyValueRow(key="status", value="302"), KeyValueRow()],
    ),
    _example(
        "ex_text", "HTTP: Plain text response",
        "A text/plain body, shown raw.",
        method="GET", url="/api/mock/text", params=[KeyValueRow(key="city", value="Tripoli"), KeyValueRow()],
    ),
    _example(
        "ex_malformed_json", "HTTP: Malformed JSON",
        "JSON content type with a broken body; the viewer falls back to raw text.",
        method="GET", url="/api/mock/malformed-json",
    ),
    _example(
        "ex_rate_limit", "HTTP: Rate limit (sometimes 429)",
        "Send it a few times; about a third of calls answer 429.",
        method="GET", url="/api/mock/rate-limit",
    ),
    _example(
        "ex_cities", "Data: Libyan cities",
        "List of cities with English and Arabic names.",
        method="GET", url="/api/mock/cities",
    ),
    _example(
        "ex_cities_west", "Data: Cities in the west region",
        "Filter cities with a query parameter.",
        method="GET", url="/api/mock/cities", params=[KeyValueRow(key="region", value="west"), KeyValueRow()],
    ),
    _example(
        "ex_services_tripoli", "Services: Tripoli listings",
        "Service listings filtered by city, limited with take.",
        method="GET", url="/api/mock/services",
        params=[KeyValueRow(key="city", value="Tripoli"), KeyValueRow(key="take", value="10"), KeyValueRow()],
    ),
    _example(
        "ex_services_transport", "Services: Transport in Tripoli",
        "Combine the city and category filters.",
        method="GET", url="/api/mock/services",
        params=[KeyValueRow(key="city", value="Tripoli"), KeyValueRow(key="category", value="transport"), KeyValueRow()],
    ),
    _example(
        "ex_services_search_ar", "Services: Arabic search (سباك)",
        "Free-text search with an Arabic query.",
        method="GET", url="/api/mock/services", params=[KeyValueRow(key="q", value="سباك"), KeyValueRow()],
    ),
    _example(
        "ex_service_details", "Services: Details (svc_1)",
        "Fetch one listing by id.",
        method="GET", url="/api/mock/services/svc_1",
    ),
    _example(
        "ex_create_service", "Services: Create listing (201)",
        "POST a new service listing; expect 201.",
        method="POST", url="/api/mock/services",
        body_text=(
            '{\n  "title": "سباك - صيانة سخان مياه",\n  "category": "plumbing",\n'
            '  "cityEn": "Tripoli",\n  "cityAr": "طرابلس",\n  "priceLyd": 140,\n'
            '  "providerName": "صلاح المغربي",\n  "description": "مثال تدريبي فقط.",\n'
            '  "contactPhone": "+218 91 000 1122"\n}'
        ),
    ),
    _example(
        "ex_todos_list", "CRUD: List todos",
        "In-memory todos shared by everyone using the mock API.",
        method="GET", url="/api/mock/todos", params=[KeyValueRow(key="take", value="10"), KeyValueRow()],
    ),
    _example(
        "ex_todos_create", "CRUD: Create todo (201)",
        "POST a new todo; it goes to the top of the list.",
        method="POST", url="/api/mock/todos",
        body_text='{\n  "title": "سؤال عن حافلات طرابلس",\n  "cityEn": "Tripoli",\n  "cityAr": "طرابلس",\n  "done": false\n}',
    ),
    _example(
        "ex_todos_patch", "CRUD: Mark todo_1 done (PATCH)",
        "Partial update of a single field.",
        method="PATCH", url="/api/mock/todos/todo_1", body_text='{\n  "done": true\n}',
    ),
    _example(
        "ex_todos_delete", "CRUD: Delete todo_2 (204)",
        "DELETE answers 204 with an empty body.",
        method="DELETE", url="/api/mock/todos/todo_2",
    ),
    _example(
        "ex_github", "External: GitHub API root",
        "An allowlisted external https host.",
        method="GET", url="https://api.github.com/",
        headers=[KeyValueRow(key="Accept", value="application/vnd.github+json"), KeyValueRow()],
    ),
]
