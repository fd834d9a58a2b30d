from __future__ import annotations

import enum
import re
import unicodedata
import uuid

from sqlalchemy import select, union
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_api.core.config import settings
from portfolio_api.models.project import Project
from portfolio_api.models.redirect import SlugRedirect

# Letters NFD decomposition leaves intact. Keys are lowercase: mapping runs after lower().
_LETTER_MAP = {
    "ñ": "n",
    "ß": "ss",
    "æ": "ae",
    "ø": "o",
    "œ": "oe",
    "ł": "l",
    "đ": "d",
    "ð": "d",
    "þ": "th",
    "ı": "i",
}
_LETTER_TABLE = str.maketrans(_LETTER_MAP)
_NON_SLUG_RUN = re.compile(r"[^a-z0-9]+")
_SLUG_CHARSET = re.compile(r"^[a-z0-9-]+$")
# Room kept for "-<n>" when a long base needs a numeric suffix.
_SUFFIX_RESERVE = 8


class SlugProblem(str, enum.Enum):
    EMPTY = "EMPTY"
    TOO_LONG = "TOO_LONG"
    INVALID_CHARSET = "INVALID_CHARSET"
    BOUNDARY_HYPHEN = "BOUNDARY_HYPHEN"


SLUG_PROBLEM_MESSAGES = {
    SlugProblem.EMPTY: "Slug must contain at least one letter or digit",
    SlugProblem.TOO_LONG: "Slug is too long",
    SlugProblem.INVALID_CHARSET: "Slug may only contain lowercase letters, digits and hyphens",
    SlugProblem.BOUNDARY_HYPHEN: "Slug cannot start or end with a hyphen",
}


def normalize_slug(text: str | None) -> str:
    """Turn arbitrary text into a lowercase, hyphenated ASCII slug.

    "Aplicación de Gestión" -> "aplicacion-de-gestion". Never raises; input with
    no letters or digits yields "" which callers must reject.
    """
    if not text:
        return ""
    lowered = text.lower()
    decomposed = unicodedata.normalize("NFD", lowered)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    mapped = stripped.translate(_LETTER_TABLE)
    # A single substitution both collapses runs and leaves at most one boundary hyphen.
    return _NON_SLUG_RUN.sub("-", mapped).strip("-")


def validate_slug(slug: str | None, max_length: int | None = None) -> SlugProblem | None:
    """Return ``None`` when ``slug`` is usable, otherwise the first problem found."""
    limit = max_length or settings.slug_max_length
    if not slug:
        return SlugProblem.EMPTY
    if len(slug) > limit:
        return SlugProblem.TOO_LONG
    if not _SLUG_CHARSET.match(slug):
        return SlugProblem.INVALID_CHARSET
    if slug.startswith("-") or slug.endswith("-"):
        return SlugProblem.BOUNDARY_HYPHEN
    return None


def cap_slug(slug: str, max_length: int | None = None) -> str:
    limit = max_length or settings.slug_max_length
    if len(slug) <= limit:
        return slug
    return slug[:limit].rstrip("-")


def prepare_slug(raw: str | None) -> tuple[str, SlugProblem | None]:
    """Normalize, cap and validate user-entered text in one pass."""
    candidate = cap_slug(normalize_slug(raw))
    return candidate, validate_slug(candidate)


def _with_suffix(base: str, counter: int, limit: int) -> str:
    suffix = f"-{counter}"
    head = base[: limit - len(suffix)].rstrip("-")
    return f"{head}{suffix}"


async def _taken_slugs(session: AsyncSession, prefix: str, exclude_id: uuid.UUID | None) -> set[str]:
    project_q = select(Project.slug.label("slug")).where(Project.slug.startswith(prefix, autoescape=True))
    redirect_q = select(SlugRedirect.old_slug.label("slug")).where(
        SlugRedirect.old_slug.startswith(prefix, autoescape=True)
    )
    if exclude_id:
        project_q = project_q.where(Project.id != exclude_id)
        redirect_q = redirect_q.where(
            (SlugRedirect.project_id.is_(None)) | (SlugRedirect.project_id != exclude_id)
        )
    result = await session.execute(union(project_q, redirect_q))
    return set(result.scalars().all())


async def find_available_slug(session: AsyncSession, base: str, exclude_id: uuid.UUID | None = None) -> str:
    """Return ``base`` or the first free ``base-N``.

    Every slug sharing the prefix is read in one query, then suffixes are probed
    in memory, so collisions never cost extra round-trips. Slugs vacated by other
    projects count as taken because they still redirect somewhere.
    """
    limit = settings.slug_max_length
    base = cap_slug(base, limit)
    prefix = base[: limit - _SUFFIX_RESERVE] if len(base) > limit - _SUFFIX_RESERVE else base
    taken = await _taken_slugs(session, prefix, exclude_id)

    if base not in taken:
        return base
    counter = 1
    candidate = _with_suffix(base, counter, limit)
    while candidate in taken:
        counter += 1
        candidate = _with_suffix(base, counter, limit)
    return candidate
