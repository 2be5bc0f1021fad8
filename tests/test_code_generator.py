# tests/test_code_generator.py

"""
Tests for inventory code generation (parks, areas, species, trees, employees).
"""

import json

import pytest

from core.errors import CodeGenerationError
from core.code_generator import (
    park_prefix_candidates,
    area_letter_candidates,
    species_code_candidates,
    next_sequence_number,
    point_in_polygon,
    parse_polygon,
    generate_park_prefix,
    generate_area_code,
    generate_species_code,
    generate_tree_code,
    generate_employee_code,
    detect_area,
)


SQUARE = [
    {"lat": 0, "lng": 0},
    {"lat": 0, "lng": 10},
    {"lat": 10, "lng": 10},
    {"lat": 10, "lng": 0},
]


# ------------------------------------------------------------------
# Pure candidates
# ------------------------------------------------------------------
def test_park_prefix_skips_leading_article():
    assert next(park_prefix_candidates("Parque Bosque Urbano")) == "BO"
    assert next(park_prefix_candidates("El Álamo")) == "AL"


def test_park_name_too_short():
    with pytest.raises(CodeGenerationError):
        next(park_prefix_candidates("Parque X"))


def test_area_letters_use_word_initials():
    assert next(area_letter_candidates("Zona Infantil")) == "IN"
    assert next(area_letter_candidates("Jardín Botánico")) == "JB"


def test_species_code_candidates():
    candidates = species_code_candidates("Jacaranda")
    assert next(candidates) == "JA"
    assert next(candidates) == "JAC"

    assert next(species_code_candidates("Fresno Blanco")) == "FB"
    assert next(species_code_candidates("", "Ficus benjamina")) == "FB"


@pytest.mark.parametrize(
    "last_code, expected",
    [(None, 1), ("BO-IN-FB-0007", 8), ("EMP-0099", 100), ("garbage", 1)],
)
def test_next_sequence_number(last_code, expected):
    assert next_sequence_number(last_code) == expected


def test_point_in_polygon():
    assert point_in_polygon(5, 5, SQUARE)
    assert not point_in_polygon(15, 5, SQUARE)
    assert not point_in_polygon(1, 1, SQUARE[:2])


def test_parse_polygon_accepts_json_strings():
    assert parse_polygon(json.dumps(SQUARE)) == SQUARE
    assert parse_polygon(None) == []


# ------------------------------------------------------------------
# Supabase-backed generators
# ------------------------------------------------------------------
def test_park_prefix_avoids_existing(db):
    db.seed("parks", {"name": "Bosque Norte", "code_prefix": "BO"})
    assert generate_park_prefix(db, "Bosque Urbano") == "BS"


def test_area_code_is_scoped_to_park(db):
    db.seed("parks", {"id": 1, "code_prefix": "BO"})
    db.seed("park_areas", {"park_id": 1, "area_code": "BO-IN"})
    assert generate_area_code(db, "Zona Infantil", 1) == "BO-IF"


def test_area_code_requires_park_prefix(db):
    db.seed("parks", {"id": 1, "code_prefix": None})
    with pytest.raises(CodeGenerationError):
        generate_area_code(db, "Zona Infantil", 1)


def test_species_code_avoids_existing(db):
    db.seed("tree_species", {"species_code": "JA"})
    assert generate_species_code(db, "Jacaranda") == "JAC"


def test_tree_code_in_area_continues_sequence(db):
    db.seed("tree_species", {"id": 1, "species_code": "FB"})
    db.seed("park_areas", {"id": 1, "park_id": 1, "area_code": "BO-IN"})
    db.seed(
        "trees",
        {"tree_code": "BO-IN-FB-0007", "area_id": 1},
        {"tree_code": "BO-IN-FB-0003", "area_id": 1},
        {"tree_code": "BO-IN-JA-0020", "area_id": 1},
    )
    assert generate_tree_code(db, species_id=1, area_id=1) == "BO-IN-FB-0008"


def test_tree_code_without_area_uses_xx(db):
    db.seed("tree_species", {"id": 1, "species_code": "FB"})
    db.seed("parks", {"id": 4, "code_prefix": "BO"})
    assert generate_tree_code(db, species_id=1, park_id=4) == "BO-XX-FB-0001"


def test_tree_code_requires_species_code(db):
    db.seed("tree_species", {"id": 1, "species_code": None})
    with pytest.raises(CodeGenerationError):
        generate_tree_code(db, species_id=1, area_id=1)


def test_tree_code_requires_location(db):
    db.seed("tree_species", {"id": 1, "species_code": "FB"})
    with pytest.raises(CodeGenerationError):
        generate_tree_code(db, species_id=1)


def test_employee_codes(db):
    assert generate_employee_code(db) == "EMP-0001"
    db.seed("employees", {"employee_code": "EMP-0009"}, {"employee_code": "CUSTOM-1"})
    assert generate_employee_code(db) == "EMP-0010"


def test_detect_area(db):
    db.seed("park_areas", {"id": 7, "park_id": 1, "polygon": json.dumps(SQUARE)})
    db.seed("park_areas", {"id": 8, "park_id": 1, "polygon": "not json"})
    assert detect_area(db, 5, 5, 1) == 7
    assert detect_area(db, 50, 50, 1) is None
