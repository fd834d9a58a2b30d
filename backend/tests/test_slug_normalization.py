import re

import pytest

from portfolio_api.services.slugs import SlugProblem, cap_slug, normalize_slug, prepare_slug, validate_slug

SLUG_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

SAMPLES = [
    "Aplicación de Gestión",
    "Proyecto con ñ y acentos",
    "  --Hello,   World!!--  ",
    "Straße & Smørrebrød",
    "Œuvre Æsthetic Łódź",
    "C++ / C# :: Rust",
    "已经 中文 title 2024",
    "émoji 🚀 launch",
    "a---b___c",
    "-",
    "!!!",
    "",
    "ALL CAPS TITLE",
    "İstanbul Çalışma",
    "x" * 150,
]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Aplicación de Gestión", "aplicacion-de-gestion"),
        ("Proyecto con ñ y acentos", "proyecto-con-n-y-acentos"),
        ("  --Hello,   World!!--  ", "hello-world"),
        ("Straße & Smørrebrød", "strasse-smorrebrod"),
        ("C++ / C# :: Rust", "c-c-rust"),
        ("My Project 2.0", "my-project-2-0"),
        ("a---b___c", "a-b-c"),
    ],
)
def test_normalize_slug_examples(text: str, expected: str) -> None:
    assert normalize_slug(text) == expected


@pytest.mark.parametrize("text", ["", "-", "!!!", "   ", "🚀🚀", None])
def test_normalize_slug_without_alphanumerics_is_empty(text) -> None:
    assert normalize_slug(text) == ""


@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_slug_is_idempotent(text: str) -> None:
    once = normalize_slug(text)
    assert normalize_slug(once) == once


@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_slug_output_charset(text: str) -> None:
    slug = normalize_slug(text)
    assert slug == "" or SLUG_RE.match(slug)


@pytest.mark.parametrize(
    ("slug", "problem"),
    [
        ("", SlugProblem.EMPTY),
        (None, SlugProblem.EMPTY),
        ("a" * 101, SlugProblem.TOO_LONG),
        ("Upper-Case", SlugProblem.INVALID_CHARSET),
        ("with space", SlugProblem.INVALID_CHARSET),
        ("ñandu", SlugProblem.INVALID_CHARSET),
        ("-leading", SlugProblem.BOUNDARY_HYPHEN),
        ("trailing-", SlugProblem.BOUNDARY_HYPHEN),
    ],
)
def test_validate_slug_classifies_failures(slug, problem: SlugProblem) -> None:
    assert validate_slug(slug) is problem


@pytest.mark.parametrize("slug", ["a", "my-project", "a" * 100, "v2-final-final"])
def test_validate_slug_accepts_valid(slug: str) -> None:
    assert validate_slug(slug) is None


def test_cap_slug_trims_hyphen_exposed_by_cut() -> None:
    raw = "a" * 99 + "-tail"
    capped = cap_slug(raw)
    assert capped == "a" * 99
    assert validate_slug(capped) is None


def test_prepare_slug_normalizes_caps_and_validates() -> None:
    slug, problem = prepare_slug("Título " * 40)
    assert problem is None
    assert len(slug) <= 100
    assert not slug.endswith("-")

    empty, problem = prepare_slug("¿¡!?")
    assert empty == ""
    assert problem is SlugProblem.EMPTY
