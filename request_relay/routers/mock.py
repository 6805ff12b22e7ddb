"""
Mock training API.

Same-origin endpoints under ``/api/mock/`` that the relay may target
without touching the network: JSON, text, broken JSON, redirects,
status codes, delays, a few auth schemes, and in-memory todos and
services to practise CRUD against.
"""

import asyncio
import random
import re
import time
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response, HTMLResponse

from ..services.mock_store import list_cities, service_store, to_number, todo_store

router = APIRouter(prefix="/api/mock", tags=["mock"])

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

TRAINING_TOKEN = "TRAINING_TOKEN"
EXPIRED_TOKEN = "EXPIRED_TOKEN"
TRAINING_REFRESH_TOKEN = "TRAINING_REFRESH_TOKEN"
TRAINING_API_KEY = "LIBYA123"
TRAINING_EMAIL = "student@khidmaty.ly"
TRAINING_PASSWORD = "password123"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
BEARER_PATTERN = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)

REDIRECT_PREFIX = "/api/mock/"
REDIRECT_STATUSES = {301, 302, 307, 308}

RATE_LIMIT_CHANCE = 0.3
TODO_TITLE_MAX = 140
SERVICE_TITLE_MAX = 120
PROVIDER_NAME_MAX = 80
PRICE_MAX_LYD = 10000

USERS = [
    {"id": "u_1", "name": "أحمد الزنتاني"},
    {"id": "u_2", "name": "فاطمة الترهوني"},
    {"id": "u_3", "name": "محمد المصراتي"},
    {"id": "u_4", "name": "خديجة الورفلي"},
    {"id": "u_5", "name": "سالم بن عمر"},
]

STUDENT = {
    "id": "student_1",
    "name": "عائشة",
    "email": TRAINING_EMAIL,
    "cityEn": "Tripoli",
    "cityAr": "طرابلس",
    "role": "student",
}


def error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)


def clamp_int(raw: str | None, default: int, low: int, high: int) -> int:
    try:
        value = int(float(raw)) if raw is not None else default
    except (ValueError, OverflowError):
        return low
    return max(low, min(high, value))


async def read_json(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


def text_field(body: dict, key: str) -> str:
    value = body.get(key)
    return value.strip() if isinstance(value, str) else ""


def bearer_token(request: Request) -> str | None:
    match = BEARER_PATTERN.match(request.headers.get("authorization", "").strip())
    return match.group(1).strip() if match else None


def is_safe_echo_header(name: str) -> bool:
    lower = name.lower()
    return lower in ("accept", "content-type", "authorization") or lower.startswith("x-")


@router.get("/users")
async def list_users():
    return {"ok": True, "users": USERS}


@router.post("/users")
async def create_user(request: Request):
    body = await read_json(request)
    body = body if isinstance(body, dict) else {}
    name = body.get("name").strip() if isinstance(body.get("name"), str) else ""
    email = body.get("email").strip() if isinstance(body.get("email"), str) else ""

    if not name or not EMAIL_PATTERN.match(email):
        return error("Invalid payload. Expected {name:string,email:string}.", 400)

    user = {"id": f"u_{uuid.uuid4().hex[:8]}", "name": name, "email": email}
    return JSONResponse({"ok": True, "user": user}, status_code=201)


@router.api_route("/echo", methods=ALL_METHODS)
async def echo(request: Request):
    """Echo the query, safe headers and raw body back."""
    body = await request.body()
    return {
        "ok": True,
        "method": request.method,
        "query": dict(request.query_params),
        "headers": {k: v for k, v in request.headers.items() if is_safe_echo_header(k)},
        "bodyText": body.decode("utf-8", errors="replace"),
    }


@router.get("/status")
async def status_code(request: Request):
    code = clamp_int(request.query_params.get("code"), 200, 100, 599)
    fmt = (request.query_params.get("format") or "").lower()
    message = (request.query_params.get("message") or "").strip()
    headers = {"cache-control": "no-store"}

    if code == 204 or fmt == "empty":
        return Response(status_code=204, headers=headers)
    if fmt == "text":
        return PlainTextResponse(message or f"Status {code} from /api/mock/status", status_code=code, headers=headers)
    return JSONResponse(
        {
            "ok": 200 <= code < 300,
            "status": code,
            "message": message or f"Status {code} from /api/mock/status",
            "hint": "Use ?code=418 or ?code=500&message=... to practice status handling.",
        },
        status_code=code,
        headers=headers,
    )


@router.get("/redirect")
async def redirect(request: Request):
    """Redirect to another mock endpoint; the relay must not follow it."""
    to = (request.query_params.get("to") or "/api/mock/users").strip()
    code = clamp_int(request.query_params.get("status"), 302, 0, 999)
    if not to.startswith(REDIRECT_PREFIX):
        return error(f"Redirect target must start with {REDIRECT_PREFIX}", 400)

    location = str(request.base_url).rstrip("/") + to
    return RedirectResponse(location, status_code=code if code in REDIRECT_STATUSES else 302)


@router.api_route("/text", methods=["GET", "POST"])
async def text(request: Request):
    if (request.query_params.get("mode") or "").lower() == "html":
        return HTMLResponse(
            '<!doctype html><html><head><meta charset="utf-8"/><title>Mini Postman</title></head>'
            "<body><h1>Mini Postman HTML</h1><p>This is an HTML response for practice.</p></body></html>"
        )
    city = (request.query_params.get("city") or "").strip() or "Tripoli"
    return PlainTextResponse(f"Hello from {city}. This is a text/plain response for practice.\n")


@router.api_route("/malformed-json", methods=ALL_METHODS)
async def malformed_json():
    return Response(
        '{ "ok": true, "note": "This is intentionally broken JSON"',
        media_type="application/json",
    )


@router.api_route("/secure", methods=ALL_METHODS)
async def secure(request: Request):
    if bearer_token(request) != TRAINING_TOKEN:
        return error("Unauthorized", 401)
    return {"ok": True, "message": "Authorized"}


@router.api_route("/apikey/header", methods=ALL_METHODS)
async def apikey_header(request: Request):
    if request.headers.get("x-api-key", "").strip() != TRAINING_API_KEY:
        return error("Missing or invalid API key", 401)
    return {
        "ok": True,
        "message": "API key accepted",
        "accepted": {"in": "header", "name": "x-api-key", "value": TRAINING_API_KEY},
    }


@router.api_route("/apikey/query", methods=ALL_METHODS)
async def apikey_query(request: Request):
    if (request.query_params.get("api_key") or "").strip() != TRAINING_API_KEY:
        return error("Missing or invalid API key", 401)
    return {
        "ok": True,
        "message": "API key accepted",
        "accepted": {"in": "query", "name": "api_key", "value": TRAINING_API_KEY},
    }


@router.api_route("/delay", methods=ALL_METHODS)
async def delay(request: Request):
    ms = clamp_int(request.query_params.get("ms"), 600, 0, 5000)
    start = time.perf_counter()
    await asyncio.sleep(ms / 1000)
    actual = int((time.perf_counter() - start) * 1000)
    return {
        "ok": True,
        "requestedDelayMs": ms,
        "actualDelayMs": max(0, actual),
        "nowIso": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/auth/login")
async def login(request: Request):
    body = await read_json(request)
    body = body if isinstance(body, dict) else {}
    email = body.get("email").strip() if isinstance(body.get("email"), str) else ""
    password = body.get("password") if isinstance(body.get("password"), str) else ""

    if not email:
        return error("Missing email", 400)
    if not EMAIL_PATTERN.match(email):
        return error("Invalid email", 400)
    if not password:
        return error("Missing password", 400)
    if email.lower() != TRAINING_EMAIL or password != TRAINING_PASSWORD:
        return error("Invalid credentials", 401)

    return {
        "ok": True,
        "tokenType": "Bearer",
        "accessToken": TRAINING_TOKEN,
        "refreshToken": TRAINING_REFRESH_TOKEN,
        "expiresInSeconds": 3600,
        "user": STUDENT,
    }


@router.get("/auth/profile")
async def profile(request: Request):
    token = bearer_token(request)
    if not token:
        return error("Missing bearer token", 401)
    if token == EXPIRED_TOKEN:
        return error("Token expired", 401)
    if token != TRAINING_TOKEN:
        return error("Invalid token", 401)
    return {"ok": True, "user": STUDENT, "scopes": ["read:profile", "read:services"]}


@router.post("/auth/refresh")
async def refresh(request: Request):
    body = await read_json(request)
    body = body if isinstance(body, dict) else {}
    token = text_field(body, "refreshToken")

    if not token:
        return error("Missing refreshToken", 400)
    if token != TRAINING_REFRESH_TOKEN:
        return error("Invalid refresh token", 401)

    return {
        "ok": True,
        "tokenType": "Bearer",
        "accessToken": TRAINING_TOKEN,
        "refreshToken": TRAINING_REFRESH_TOKEN,
        "expiresInSeconds": 3600,
    }


@router.api_route("/rate-limit", methods=ALL_METHODS)
async def rate_limit():
    """Answer 429 on roughly a third of calls."""
    if random.random() < RATE_LIMIT_CHANCE:
        return error("Rate limited", 429)
    return {"ok": True, "message": "OK"}


@router.get("/cities")
async def cities(request: Request):
    rows, total, take = list_cities(
        region=request.query_params.get("region") or "",
        q=request.query_params.get("q") or "",
        take=clamp_int(request.query_params.get("take"), 50, 1, 50),
    )
    return {"ok": True, "cities": rows, "total": total, "take": take}


@router.get("/todos")
async def list_todos(request: Request):
    params = request.query_params
    done = params.get("done")
    rows, total, take = todo_store.list(
        city=params.get("city") or "",
        q=params.get("q") or "",
        done=None if done is None else done == "true",
        take=clamp_int(params.get("take"), 20, 1, 50),
    )
    return {"ok": True, "todos": rows, "total": total, "take": take}


@router.post("/todos")
async def create_todo(request: Request):
    body = await read_json(request)
    body = body if isinstance(body, dict) else {}
    title = text_field(body, "title")
    city_en = text_field(body, "cityEn")
    city_ar = text_field(body, "cityAr")
    done = body.get("done", False)

    if not title or not city_en or not city_ar or not isinstance(done, bool):
        return error("Invalid payload. Expected {title,cityEn,cityAr,done?}.", 400)
    if len(title) > TODO_TITLE_MAX:
        return error("title too long", 400)

    todo = todo_store.create(title, city_en, city_ar, done)
    return JSONResponse({"ok": True, "todo": todo}, status_code=201)


@router.get("/todos/{todo_id}")
async def get_todo(todo_id: str):
    todo = todo_store.get(todo_id)
    if todo is None:
        return error("Not found", 404)
    return {"ok": True, "todo": todo}


@router.put("/todos/{todo_id}")
async def replace_todo(todo_id: str, request: Request):
    body = await read_json(request)
    body = body if isinstance(body, dict) else {}
    title = text_field(body, "title")
    city_en = text_field(body, "cityEn")
    city_ar = text_field(body, "cityAr")
    done = body.get("done")

    if not title or not city_en or not city_ar or not isinstance(done, bool):
        return error("Invalid payload. Expected {title,cityEn,cityAr,done:boolean}.", 400)
    if len(title) > TODO_TITLE_MAX:
        return error("title too long", 400)

    todo = todo_store.replace(todo_id, title, city_en, city_ar, done)
    if todo is None:
        return error("Not found", 404)
    return {"ok": True, "todo": todo}


@router.patch("/todos/{todo_id}")
async def patch_todo(todo_id: str, request: Request):
    body = await read_json(request)
    body = body if isinstance(body, dict) else {}

    changes = {key: text_field(body, key) for key in ("title", "cityEn", "cityAr") if text_field(body, key)}
    if isinstance(body.get("done"), bool):
        changes["done"] = body["done"]
    if not changes:
        return error("Empty patch", 400)
    if len(changes.get("title", "")) > TODO_TITLE_MAX:
        return error("title too long", 400)

    todo = todo_store.patch(todo_id, changes)
    if todo is None:
        return error("Not found", 404)
    return {"ok": True, "todo": todo}


@router.delete("/todos/{todo_id}")
async def delete_todo(todo_id: str):
    if not todo_store.delete(todo_id):
        return error("Not found", 404)
    return Response(status_code=204)


@router.get("/services")
async def list_services(request: Request):
    params = request.query_params
    rows, total, take = service_store.list(
        city=params.get("city") or "",
        category=params.get("category") or "",
        q=params.get("q") or "",
        min_price=to_number(params.get("minPrice")),
        max_price=to_number(params.get("maxPrice")),
        take=clamp_int(params.get("take"), 20, 1, 50),
    )
    return {"ok": True, "services": rows, "total": total, "take": take}


@router.post("/services")
async def create_service(request: Request):
    body = await read_json(request)
    body = body if isinstance(body, dict) else {}
    fields = {key: text_field(body, key) for key in ("title", "category", "cityEn", "cityAr", "providerName")}
    price = to_number(body.get("priceLyd"))

    if not all(fields.values()) or price is None:
        return error("Invalid payload. Expected {title,category,cityEn,cityAr,priceLyd,providerName}.", 400)
    if len(fields["title"]) > SERVICE_TITLE_MAX or len(fields["providerName"]) > PROVIDER_NAME_MAX:
        return error("Text too long", 400)
    if price < 0 or price > PRICE_MAX_LYD:
        return error("priceLyd out of range", 400)

    description = text_field(body, "description")[:500] or None
    contact_phone = text_field(body, "contactPhone")[:40] or None

    service = service_store.create(
        title=fields["title"],
        category=fields["category"],
        city_en=fields["cityEn"],
        city_ar=fields["cityAr"],
        price_lyd=price,
        provider_name=fields["providerName"],
        description=description,
        contact_phone=contact_phone,
    )
    return JSONResponse({"ok": True, "service": service}, status_code=201)


@router.get("/services/{service_id}")
async def get_service(service_id: str):
    service = service_store.get(service_id)
    if service is None:
        return error("Not found", 404)
    return {"ok": True, "service": service}
