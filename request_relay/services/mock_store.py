"""
In-memory data behind the mock training API.

The stores live for the life of the process and are shared by every
caller. ``reset()`` brings back the seed rows.
"""

import math
import uuid
from datetime import datetime, timezone

DEFAULT_TAKE = 20
MAX_TAKE = 50


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def short_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def clamp_take(take: int | None) -> int:
    if take is None:
        return DEFAULT_TAKE
    return max(1, min(MAX_TAKE, take))


def contains(haystack: str, needle: str) -> bool:
    return needle.lower() in str(haystack or "").lower()


def to_number(value) -> int | float | None:
    """Finite number from a JSON value or numeric string, else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if math.isfinite(number) and number.is_integer():
            number = int(number)
    else:
        return None
    if isinstance(number, float) and not math.isfinite(number):
        return None
    return number


INITIAL_TODOS = [
    {"id": "todo_1", "title": "Fix AC in apartment (صيانة مكيف)", "cityEn": "Tripoli", "cityAr": "طرابلس", "done": False},
    {"id": "todo_2", "title": "Plumbing leak (سباكة)", "cityEn": "Misrata", "cityAr": "مصراتة", "done": True},
    {"id": "todo_3", "title": "Bus timetable question (مواعيد الحافلات)", "cityEn": "Benghazi", "cityAr": "بنغازي", "done": False},
]

INITIAL_SERVICES = [
    {
        "id": "svc_1", "title": "سباك في طرابلس (طوارئ 24/7)", "category": "plumbing",
        "cityEn": "Tripoli", "cityAr": "طرابلس", "priceLyd": 120, "providerName": "عمر الفيتوري",
        "rating": 4.7, "description": "إصلاح التسريبات وفتح المجاري وتركيب الأدوات الصحية. (Training endpoint)",
        "contactPhone": "+218 91 234 5678",
    },
    {
        "id": "svc_2", "title": "كهربائي + فحص سلامة الكهرباء", "category": "electrician",
        "cityEn": "Benghazi", "cityAr": "بنغازي", "priceLyd": 90, "providerName": "سالم الدرسي",
        "rating": 4.5, "description": "فحص التمديدات والقواطع والمقابس مع تقرير مبسط.",
        "contactPhone": "+218 92 111 2233",
    },
    {
        "id": "svc_3", "title": "تنظيف شقق ومنازل", "category": "cleaning",
        "cityEn": "Misrata", "cityAr": "مصراتة", "priceLyd": 150, "providerName": "مريم الشريف", "rating": 4.2,
    },
    {
        "id": "svc_4", "title": "صيانة مكيفات وتركيب", "category": "ac",
        "cityEn": "Tripoli", "cityAr": "طرابلس", "priceLyd": 180, "providerName": "شركة النسيم", "rating": 4.6,
    },
    {
        "id": "svc_5", "title": "ميكانيكي سيارات (فحص + صيانة)", "category": "car",
        "cityEn": "Zawiya", "cityAr": "الزاوية", "priceLyd": 110, "providerName": "محمود الزاوي", "rating": 4.1,
    },
    {
        "id": "svc_6", "title": "دروس خصوصية رياضيات (ثانوي)", "category": "tutoring",
        "cityEn": "Benghazi", "cityAr": "بنغازي", "priceLyd": 60, "providerName": "هناء العبيدي", "rating": 4.8,
    },
    {
        "id": "svc_7", "title": "خدمة نقل داخل طرابلس (حافلة)", "category": "transport",
        "cityEn": "Tripoli", "cityAr": "طرابلس", "priceLyd": 15, "providerName": "شركة النقل العام",
        "rating": 3.9, "description": "معلومات تجريبية للتدريب فقط (ليست بيانات حقيقية).",
    },
]

CITIES = [
    {"id": "tri", "nameEn": "Tripoli", "nameAr": "طرابلس", "region": "west"},
    {"id": "ben", "nameEn": "Benghazi", "nameAr": "بنغازي", "region": "east"},
    {"id": "mis", "nameEn": "Misrata", "nameAr": "مصراتة", "region": "west"},
    {"id": "sbh", "nameEn": "Sabha", "nameAr": "سبها", "region": "south"},
    {"id": "zaw", "nameEn": "Zawiya", "nameAr": "الزاوية", "region": "west"},
    {"id": "srt", "nameEn": "Sirte", "nameAr": "سرت", "region": "central"},
    {"id": "drn", "nameEn": "Derna", "nameAr": "درنة", "region": "east"},
    {"id": "tbr", "nameEn": "Tobruk", "nameAr": "طبرق", "region": "east"},
    {"id": "ghr", "nameEn": "Gharyan", "nameAr": "غريان", "region": "west"},
    {"id": "kuf", "nameEn": "Kufra", "nameAr": "الكفرة", "region": "south"},
]


def list_cities(region: str = "", q: str = "", take: int | None = None) -> tuple[list[dict], int, int]:
    """Cities filtered by exact region and a name substring."""
    region = region.strip().lower()
    q = q.strip()
    take = max(1, min(MAX_TAKE, take if take is not None else MAX_TAKE))

    rows = list(CITIES)
    if region:
        rows = [c for c in rows if c["region"] == region]
    if q:
        rows = [c for c in rows if contains(c["nameEn"], q) or contains(c["nameAr"], q)]
    return rows[:take], len(rows), take


class TodoStore:
    """Todo rows for CRUD practice; new rows go to the front."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        now = now_iso()
        self._rows = [dict(row, createdAtIso=now, updatedAtIso=now) for row in INITIAL_TODOS]

    def _index(self, todo_id: str) -> int | None:
        for i, row in enumerate(self._rows):
            if row["id"] == todo_id:
                return i
        return None

    def list(
        self,
        city: str = "",
        q: str = "",
        done: bool | None = None,
        take: int | None = None,
    ) -> tuple[list[dict], int, int]:
        """
        Filter todos.

        Returns:
            Tuple of (first ``take`` rows, number of matches, effective take)
        """
        take = clamp_take(take)
        rows = list(self._rows)
        if done is not None:
            rows = [t for t in rows if t["done"] is done]
        if city.strip():
            rows = [t for t in rows if contains(t["cityEn"], city.strip()) or contains(t["cityAr"], city.strip())]
        if q.strip():
            rows = [t for t in rows if contains(t["title"], q.strip())]
        return rows[:take], len(rows), take

    def get(self, todo_id: str) -> dict | None:
        index = self._index(str(todo_id or "").strip())
        return None if index is None else self._rows[index]

    def create(self, title: str, city_en: str, city_ar: str, done: bool = False) -> dict:
        now = now_iso()
        todo = {
            "id": short_id("todo"),
            "title": title,
            "cityEn": city_en,
            "cityAr": city_ar,
            "done": bool(done),
            "createdAtIso": now,
            "updatedAtIso": now,
        }
        self._rows.insert(0, todo)
        return todo

    def replace(self, todo_id: str, title: str, city_en: str, city_ar: str, done: bool) -> dict | None:
        index = self._index(todo_id)
        if index is None:
            return None
        todo = {
            "id": todo_id,
            "title": title,
            "cityEn": city_en,
            "cityAr": city_ar,
            "done": done,
            "createdAtIso": self._rows[index]["createdAtIso"],
            "updatedAtIso": now_iso(),
        }
        self._rows[index] = todo
        return todo

    def patch(self, todo_id: str, changes: dict) -> dict | None:
        """Apply a partial update of title, cityEn, cityAr and/or done."""
        index = self._index(todo_id)
        if index is None:
            return None
        todo = dict(self._rows[index], **changes, updatedAtIso=now_iso())
        self._rows[index] = todo
        return todo

    def delete(self, todo_id: str) -> bool:
        index = self._index(todo_id)
        if index is None:
            return False
        del self._rows[index]
        return True


class ServiceStore:
    """Service listings; only listing, lookup and creation are exposed."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        now = now_iso()
        self._rows = [dict(row, createdAtIso=now) for row in INITIAL_SERVICES]

    def list(
        self,
        city: str = "",
        category: str = "",
        q: str = "",
        min_price: float | None = None,
        max_price: float | None = None,
        take: int | None = None,
    ) -> tuple[list[dict], int, int]:
        """
        Filter services by city, category, free text and price range.

        ``q`` matches the title, provider name or either city name.
        """
        take = clamp_take(take)
        city, category, q = city.strip(), category.strip(), q.strip()

        rows = list(self._rows)
        if city:
            rows = [s for s in rows if contains(s["cityEn"], city) or contains(s["cityAr"], city)]
        if category:
            rows = [s for s in rows if contains(s["category"], category)]
        if q:
            rows = [
                s for s in rows
                if any(contains(s[field], q) for field in ("title", "providerName", "cityEn", "cityAr"))
            ]
        if min_price is not None:
            rows = [s for s in rows if s["priceLyd"] >= min_price]
        if max_price is not None:
            rows = [s for s in rows if s["priceLyd"] <= max_price]
        return rows[:take], len(rows), take

    def get(self, service_id: str) -> dict | None:
        needle = str(service_id or "").strip()
        if not needle:
            return None
        return next((s for s in self._rows if s["id"] == needle), None)

    def create(
        self,
        title: str,
        category: str,
        city_en: str,
        city_ar: str,
        price_lyd: int | float,
        provider_name: str,
        description: str | None = None,
        contact_phone: str | None = None,
    ) -> dict:
        service = {
            "id": short_id("svc"),
            "title": title,
            "category": category,
            "cityEn": city_en,
            "cityAr": city_ar,
            "priceLyd": price_lyd,
            "providerName": provider_name,
            "rating": 0,
            "createdAtIso": now_iso(),
        }
        if description is not None:
            service["description"] = description
        if contact_phone is not None:
            service["contactPhone"] = contact_phone
        self._rows.insert(0, service)
        return service


todo_store = TodoStore()
service_store = ServiceStore()
