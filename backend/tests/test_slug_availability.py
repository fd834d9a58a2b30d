import pytest
from sqlalchemy import event

from portfolio_api.models.project import Project
from portfolio_api.models.redirect import SlugRedirect
from portfolio_api.services.slugs import find_available_slug

pytestmark = pytest.mark.anyio


async def _seed_projects(session_factory, slugs: list[str]) -> dict[str, Project]:
    async with session_factory() as session:
        projects = {slug: Project(slug=slug, title=slug.replace("-", " ").title()) for slug in slugs}
        session.add_all(projects.values())
        await session.commit()
        return projects


async def test_free_base_is_returned_unchanged(session_factory) -> None:
    await _seed_projects(session_factory, ["other-project"])
    async with session_factory() as session:
        assert await find_available_slug(session, "my-project") == "my-project"


@pytest.mark.parametrize("k", [0, 1, 4, 12])
async def test_collisions_get_next_numeric_suffix(session_factory, k: int) -> None:
    taken = ["my-project"] + [f"my-project-{n}" for n in range(1, k + 1)]
    await _seed_projects(session_factory, taken)
    async with session_factory() as session:
        slug = await find_available_slug(session, "my-project")
    assert slug == f"my-project-{k + 1}"
    assert slug not in taken


async def test_gap_in_suffixes_is_reused(session_factory) -> None:
    await _seed_projects(session_factory, ["site", "site-1", "site-3"])
    async with session_factory() as session:
        assert await find_available_slug(session, "site") == "site-2"


async def test_excluded_project_does_not_collide_with_itself(session_factory) -> None:
    projects = await _seed_projects(session_factory, ["portfolio", "portfolio-1"])
    async with session_factory() as session:
        slug = await find_available_slug(session, "portfolio", exclude_id=projects["portfolio"].id)
    assert slug == "portfolio"


async def test_slugs_vacated_by_other_projects_are_taken(session_factory) -> None:
    projects = await _seed_projects(session_factory, ["new-home", "mine"])
    async with session_factory() as session:
        session.add(SlugRedirect(old_slug="legacy", new_slug="new-home", project_id=projects["new-home"].id))
        session.add(SlugRedirect(old_slug="manual", new_slug="new-home", project_id=None))
        session.add(SlugRedirect(old_slug="own-old", new_slug="mine", project_id=projects["mine"].id))
        await session.commit()

    async with session_factory() as session:
        assert await find_available_slug(session, "legacy", exclude_id=projects["mine"].id) == "legacy-1"
        assert await find_available_slug(session, "manual", exclude_id=projects["mine"].id) == "manual-1"
        # A project may take back a slug it vacated itself.
        assert await find_available_slug(session, "own-old", exclude_id=projects["mine"].id) == "own-old"


async def test_probing_uses_a_single_query(session_factory) -> None:
    await _seed_projects(session_factory, ["busy"] + [f"busy-{n}" for n in range(1, 30)])
    async with session_factory() as session:
        statements: list[str] = []
        sync_engine = session.bind.sync_engine

        def _count(conn, cursor, statement, parameters, context, executemany):  # type: ignore[no-untyped-def]
            statements.append(statement)

        event.listen(sync_engine, "before_cursor_execute", _count)
        try:
            slug = await find_available_slug(session, "busy")
        finally:
            event.remove(sync_engine, "before_cursor_execute", _count)

    assert slug == "busy-30"
    assert len([s for s in statements if s.lstrip().upper().startswith("SELECT")]) == 1


async def test_long_base_keeps_suffixed_slug_within_limit(session_factory) -> None:
    base = "a" * 100
    await _seed_projects(session_factory, [base])
    async with session_factory() as session:
        slug = await find_available_slug(session, base)
    assert slug == "a" * 98 + "-1"
    assert len(slug) == 100
