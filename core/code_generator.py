# core/code_generator.py

"""
Inventory codes used across the tree module:

  park prefix   "Bosque Urbano"            -> "BO"
  area code     "Zona Infantil" in park BO -> "BO-IN"
  species code  "Fresno Blanco"            -> "FB"
  tree code     BO-IN-FB-0007  (or BO-XX-FB-0007 when the tree has no area)

Candidate generation is pure; uniqueness is checked against Supabase.
"""

import json
import re
import string
from typing import Iterator, List, Optional

from core.errors import CodeGenerationError
from core.logging_config import logger
from core.utils import strip_accents


PARK_PREFIX_MAX_ATTEMPTS = 26
AREA_CODE_MAX_ATTEMPTS = 26
SPECIES_CODE_MAX_ATTEMPTS = 50

_PARK_ARTICLES_RE = re.compile(r"^(el|la|los|las|parque)\s+", re.IGNORECASE)
_AREA_WORDS_RE = re.compile(r"^(zona|área|area|sector|sección|seccion)\s+", re.IGNORECASE)
_TRAILING_NUMBER_RE = re.compile(r"-(\d+)$")


def _clean(name: str, leading_words: Optional[re.Pattern] = None) -> str:
    text = (name or "").strip()
    if leading_words is not None:
        text = leading_words.sub("", text, count=1).strip()
    return strip_accents(text).upper()


def _fallback_letter(base: str, clean_name: str, attempt: int) -> str:
    """Second letter for retry N: next letter of the name, then A..Z."""
    if attempt < len(clean_name):
        return base[0] + clean_name[attempt]
    return base[0] + string.ascii_uppercase[(attempt - len(clean_name)) % 26]


# ============================================================
# Candidate sequences (pure)
# ============================================================
def park_prefix_candidates(park_name: str) -> Iterator[str]:
    clean_name = _clean(park_name, _PARK_ARTICLES_RE)
    if len(clean_name) < 2:
        raise CodeGenerationError(f"Park name is too short: '{park_name}'")

    base = clean_name[:2]
    yield base
    for attempt in range(1, PARK_PREFIX_MAX_ATTEMPTS):
        yield _fallback_letter(base, clean_name, attempt)


def area_letter_candidates(area_name: str) -> Iterator[str]:
    clean_name = _clean(area_name, _AREA_WORDS_RE)
    if len(clean_name) < 2:
        raise CodeGenerationError(f"Area name is too short: '{area_name}'")

    words = clean_name.split()
    letters = words[0][0] + words[1][0] if len(words) >= 2 else clean_name[:2]

    yield letters
    for attempt in range(1, AREA_CODE_MAX_ATTEMPTS):
        yield _fallback_letter(letters, clean_name, attempt)


def species_code_candidates(common_name: str, scientific_name: Optional[str] = None) -> Iterator[str]:
    base_name = (common_name or scientific_name or "").strip()
    if len(base_name) < 2:
        raise CodeGenerationError(f"Species name is too short: '{base_name}'")

    clean_name = _clean(base_name)
    words = clean_name.split()
    base = "".join(word[0] for word in words[:3]) if len(words) >= 2 else clean_name[:2]

    yield base
    for attempt in range(1, SPECIES_CODE_MAX_ATTEMPTS):
        if attempt == 1 and len(base) == 2 and len(clean_name) >= 3:
            yield clean_name[:3]
        elif attempt < len(clean_name):
            yield base[0] + clean_name[attempt]
        else:
            yield f"{base}{attempt - len(clean_name) + 1}"


def next_sequence_number(last_code: Optional[str]) -> int:
    if not last_code:
        return 1
    match = _TRAILING_NUMBER_RE.search(last_code)
    return int(match.group(1)) + 1 if match else 1


# ============================================================
# Geometry
# ============================================================
def parse_polygon(raw) -> List[dict]:
    """Polygons are stored as jsonb, but older rows hold a JSON string."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = json.loads(raw)
    return list(raw)


def point_in_polygon(lat: float, lng: float, polygon: List[dict]) -> bool:
    """Ray casting over [{lat, lng}, ...]."""
    inside = False
    count = len(polygon)
    if count < 3:
        return False

    j = count - 1
    for i in range(count):
        xi, yi = float(polygon[i]["lat"]), float(polygon[i]["lng"])
        xj, yj = float(polygon[j]["lat"]), float(polygon[j]["lng"])

        if (yi > lng) != (yj > lng) and lat < (xj - xi) * (lng - yi) / (yj - yi) + xi:
            inside = not inside
        j = i

    return inside


# ============================================================
# Supabase-backed generators
# ============================================================
def _exists(client, table: str, column: str, value: str, **filters) -> bool:
    query = client.table(table).select("id").eq(column, value)
    for key, filter_value in filters.items():
        query = query.eq(key, filter_value)
    res = query.limit(1).execute()
    return bool(res.data)


def generate_park_prefix(client, park_name: str) -> str:
    for candidate in park_prefix_candidates(park_name):
        if not _exists(client, "parks", "code_prefix", candidate):
            return candidate
    raise CodeGenerationError(f"Could not generate a unique prefix for park '{park_name}'")


def _park_prefix(client, park_id: int) -> str:
    res = client.table("parks").select("id, code_prefix").eq("id", park_id).limit(1).execute()
    if not res.data or not res.data[0].get("code_prefix"):
        raise CodeGenerationError(f"Park {park_id} has no code prefix assigned")
    return res.data[0]["code_prefix"]


def generate_area_code(client, area_name: str, park_id: int) -> str:
    prefix = _park_prefix(client, park_id)

    for letters in area_letter_candidates(area_name):
        candidate = f"{prefix}-{letters}"
        if not _exists(client, "park_areas", "area_code", candidate, park_id=park_id):
            return candidate

    raise CodeGenerationError(f"Could not generate a unique code for area '{area_name}'")


def generate_species_code(client, common_name: str, scientific_name: Optional[str] = None) -> str:
    for candidate in species_code_candidates(common_name, scientific_name):
        if not _exists(client, "tree_species", "species_code", candidate):
            return candidate

    raise CodeGenerationError(f"Could not generate a unique code for species '{common_name}'")


def generate_tree_code(client, species_id: int, area_id: Optional[int] = None, park_id: Optional[int] = None) -> str:
    species = (
        client.table("tree_species")
        .select("id, species_code")
        .eq("id", species_id)
        .limit(1)
        .execute()
    )
    if not species.data or not species.data[0].get("species_code"):
        raise CodeGenerationError(
            f"Species {species_id} has no code assigned; assign one before registering trees"
        )
    species_code = species.data[0]["species_code"]

    if area_id:
        area = client.table("park_areas").select("id, area_code").eq("id", area_id).limit(1).execute()
        if not area.data or not area.data[0].get("area_code"):
            raise CodeGenerationError(f"Area {area_id} has no code assigned")
        stem = f"{area.data[0]['area_code']}-{species_code}"
        query = client.table("trees").select("tree_code").like("tree_code", f"{stem}-%")

    elif park_id:
        stem = f"{_park_prefix(client, park_id)}-XX-{species_code}"
        query = (
            client.table("trees")
            .select("tree_code")
            .eq("park_id", park_id)
            .is_("area_id", "null")
            .like("tree_code", f"{stem}-%")
        )

    else:
        raise CodeGenerationError("area_id or park_id is required to generate a tree code")

    last = query.order("tree_code", desc=True).limit(1).execute()
    last_code = last.data[0]["tree_code"] if last.data else None

    code = f"{stem}-{next_sequence_number(last_code):04d}"
    logger.debug(f"[codes] Generated tree code {code}")
    return code


def detect_area(client, lat: float, lng: float, park_id: int) -> Optional[int]:
    """Return the first area of the park whose polygon contains the point."""
    res = (
        client.table("park_areas")
        .select("id, polygon")
        .eq("park_id", park_id)
        .execute()
    )

    for area in res.data or []:
        try:
            polygon = parse_polygon(area.get("polygon"))
        except (ValueError, TypeError) as e:
            logger.warning(f"[codes] Unreadable polygon for area {area.get('id')}: {e}")
            continue

        if polygon and point_in_polygon(lat, lng, polygon):
            return area["id"]

    return None


# ============================================================
# HR
# ============================================================
def generate_employee_code(client) -> str:
    """EMP-0001, EMP-0002, ..."""
    res = (
        client.table("employees")
        .select("employee_code")
        .like("employee_code", "EMP-%")
        .order("employee_code", desc=True)
        .limit(1)
        .execute()
    )
    last_code = res.data[0]["employee_code"] if res.data else None
    return f"EMP-{next_sequence_number(last_code):04d}"
