import argparse
import asyncio
import json
import re
import uuid
from pathlib import Path

from portfolio_api.core.errors import AppError
from portfolio_api.db.session import SessionLocal
from portfolio_api.services import projects as project_service
from portfolio_api.services import redirects as redirect_service

SAFE_JSON_FILENAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*\.json$")


def _resolve_json_path(raw_path: str) -> Path:
    raw = (raw_path or "").strip()
    if Path(raw).name != raw or not SAFE_JSON_FILENAME_RE.fullmatch(raw):
        raise SystemExit("Only plain JSON file names are allowed")
    resolved = (Path.cwd().resolve() / raw).resolve(strict=False)
    if resolved.exists() and resolved.is_dir():
        raise SystemExit(f"Output path points to a directory: {resolved}")
    return resolved


async def check_redirects() -> bool:
    async with SessionLocal() as session:
        report = await redirect_service.audit_redirects(session)
    for slug in report.self_loops:
        print(f"self-loop: {slug} -> {slug}")
    for old_slug, new_slug, next_slug in report.multi_hop:
        print(f"multi-hop: {old_slug} -> {new_slug} -> {next_slug}")
    for slug in report.shadowed:
        print(f"shadowed by live project: {slug}")
    for old_slug, new_slug in report.dangling:
        print(f"dangling target (warning): {old_slug} -> {new_slug}")
    print("Redirect table OK" if report.ok else "Redirect table has violations")
    return report.ok


async def resolve(slug: str) -> str | None:
    async with SessionLocal() as session:
        return await redirect_service.resolve_redirect(session, slug)


async def rename(project_id: uuid.UUID, manual_slug: str | None, title: str | None) -> None:
    async with SessionLocal() as session:
        change = await project_service.regenerate_slug(session, project_id, title=title, manual_slug=manual_slug)
    if change.changed:
        print(f"{change.old_slug} -> {change.new_slug}")
    else:
        print(f"Slug unchanged: {change.new_slug}")


async def export_redirects(output_path: Path) -> None:
    async with SessionLocal() as session:
        edges = await redirect_service.list_redirects(session)
    payload = [
        {
            "old_slug": edge.old_slug,
            "new_slug": edge.new_slug,
            "project_id": str(edge.project_id) if edge.project_id else None,
            "note": edge.note,
        }
        for edge in edges
    ]
    output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"Exported {len(payload)} redirects to {output_path}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Slug and redirect maintenance")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("check-redirects", help="Report redirect table invariant violations")

    resolve_cmd = subparsers.add_parser("resolve", help="Print where a vacated slug redirects to")
    resolve_cmd.add_argument("slug")

    rename_cmd = subparsers.add_parser("rename", help="Rename a project slug and record the redirect")
    rename_cmd.add_argument("--project-id", required=True, type=uuid.UUID)
    rename_cmd.add_argument("--slug", help="Manual slug (normalized before use)")
    rename_cmd.add_argument("--title", help="Derive the slug from this title instead of the stored one")

    export_cmd = subparsers.add_parser("export-redirects", help="Export redirects to JSON")
    export_cmd.add_argument("--output", default="redirects.json", help="Output JSON file name")
    return parser


def _run_cli_command(args: argparse.Namespace) -> bool:
    if args.command == "check-redirects":
        if not asyncio.run(check_redirects()):
            raise SystemExit(1)
        return True

    if args.command == "resolve":
        target = asyncio.run(resolve(args.slug))
        if target is None:
            raise SystemExit(f"No redirect for {args.slug}")
        print(target)
        return True

    if args.command == "rename":
        try:
            asyncio.run(rename(args.project_id, args.slug, args.title))
        except AppError as exc:
            raise SystemExit(f"{exc.code}: {exc.detail}") from exc
        return True

    if args.command == "export-redirects":
        asyncio.run(export_redirects(_resolve_json_path(args.output)))
        return True

    return False


def main():
    parser = _build_parser()
    args = parser.parse_args()
    if not _run_cli_command(args):
        parser.print_help()


if __name__ == "__main__":
    main()
