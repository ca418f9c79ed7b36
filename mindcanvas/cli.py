"""Command-line access to stored mind maps.

Usage:
  mindcanvas list
  mindcanvas new "Project plan"
  mindcanvas export --map <id> --out plan.json
  mindcanvas import --file plan.json --name "Project plan"
  mindcanvas verify

The store defaults to ~/.local/share/mindcanvas/mindcanvas.db; override it
with --db or MINDCANVAS_DATA_DIR. The owner defaults to MINDCANVAS_OWNER or
the login name.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from mindcanvas import treecodec
from mindcanvas.catalog import MapCatalog
from mindcanvas.config import Settings
from mindcanvas.payload import PayloadError, load_from_file, save_to_file, default_export_name
from mindcanvas.storage import SqliteStorage


def _open(args: argparse.Namespace) -> tuple[SqliteStorage, MapCatalog]:
    settings = Settings.from_env()
    storage = SqliteStorage(Path(args.db).expanduser() if args.db else settings.resolve_db_path())
    catalog = MapCatalog(storage, args.owner or settings.owner_id)
    result = catalog.load()
    if result.migrated:
        print(f"Migrated legacy document into map {result.map_id}")
    elif result.recovered:
        print("Catalog was unreadable; started a new one", file=sys.stderr)
    return storage, catalog


def _resolve_map(catalog: MapCatalog, map_ref: str | None) -> str:
    """Accept a full id, a unique id prefix, or a map name."""
    if not map_ref:
        return catalog.current_map_id
    matches = [m for m in catalog.maps if m.id == map_ref or m.name == map_ref]
    if not matches:
        matches = [m for m in catalog.maps if m.id.startswith(map_ref)]
    if len(matches) != 1:
        raise SystemExit(f"No unique map matches {map_ref!r}")
    return matches[0].id


def _cmd_list(args: argparse.Namespace) -> int:
    storage, catalog = _open(args)
    with storage:
        for entry in catalog.maps:
            marker = "*" if entry.id == catalog.current_map_id else " "
            print(f"{marker} {entry.id}  {entry.name}  (updated {entry.updated_at})")
    return 0


def _cmd_new(args: argparse.Namespace) -> int:
    storage, catalog = _open(args)
    with storage:
        map_id = catalog.create_map(args.name)
        if map_id is None:
            raise SystemExit("Map name must not be empty")
        print(map_id)
    return 0


def _cmd_rename(args: argparse.Namespace) -> int:
    storage, catalog = _open(args)
    with storage:
        if not catalog.rename_map(_resolve_map(catalog, args.map), args.name):
            raise SystemExit("Map name must not be empty")
    return 0


def _cmd_delete(args: argparse.Namespace) -> int:
    storage, catalog = _open(args)
    with storage:
        if not catalog.delete_map(_resolve_map(catalog, args.map)):
            raise SystemExit("Cannot delete the last remaining map")
    return 0


def _cmd_switch(args: argparse.Namespace) -> int:
    storage, catalog = _open(args)
    with storage:
        catalog.switch_map(_resolve_map(catalog, args.map))
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    storage, catalog = _open(args)
    with storage:
        payload = catalog.export_map(_resolve_map(catalog, args.map))
    if payload is None:
        raise SystemExit("Map has no stored document")
    out = save_to_file(Path(args.out) if args.out else Path(default_export_name()), payload)
    print(f"Wrote {out.resolve()}")
    return 0


def _cmd_import(args: argparse.Namespace) -> int:
    storage, catalog = _open(args)
    with storage:
        try:
            loaded = load_from_file(args.file)
        except PayloadError as exc:
            raise SystemExit(f"Cannot import {args.file}: {exc}")
        name = args.name or Path(args.file).stem
        map_id = catalog.create_map_with_payload(name, loaded.snapshot.nodes,
                                                 loaded.snapshot.connections)
        if map_id is None:
            raise SystemExit("Map name must not be empty")
    print(f"Imported {len(loaded.snapshot.nodes)} node(s) as map {map_id}")
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    storage, catalog = _open(args)
    failed = False
    with storage:
        ok = storage.integrity_ok()
        failed = failed or not ok
        print("mindcanvas store verification")
        print(f"  DB: {storage.db_path}")
        print(f"  SQLite integrity_check: {'OK' if ok else 'FAILED'}")
        for entry in catalog.maps:
            loaded = catalog.load_map_payload(entry.id)
            if loaded is None:
                print(f"  {entry.name}: MISSING payload")
                failed = True
                continue
            if not loaded.ok:
                print(f"  {entry.name}: CORRUPT payload")
                failed = True
                continue
            snapshot = loaded.snapshot
            orphans = treecodec.find_unreachable(snapshot.nodes)
            roots = sum(1 for n in snapshot.nodes if n.parent_id is None)
            print(f"  {entry.name}: nodes={len(snapshot.nodes)} "
                  f"connections={len(snapshot.connections)} roots={roots}"
                  + (" (legacy format)" if loaded.legacy else "")
                  + (f" unreachable={len(orphans)}" if orphans else ""))
    return 1 if failed else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="mindcanvas")
    parser.add_argument("--db", help="Path to the store (default: data dir)")
    parser.add_argument("--owner", help="Owner whose catalog to use")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_list = sub.add_parser("list", help="List maps")
    p_list.set_defaults(func=_cmd_list)

    p_new = sub.add_parser("new", help="Create a map with a single root node")
    p_new.add_argument("name")
    p_new.set_defaults(func=_cmd_new)

    p_ren = sub.add_parser("rename", help="Rename a map")
    p_ren.add_argument("map", help="Map id, id prefix or name")
    p_ren.add_argument("name")
    p_ren.set_defaults(func=_cmd_rename)

    p_del = sub.add_parser("delete", help="Delete a map and its document")
    p_del.add_argument("map", help="Map id, id prefix or name")
    p_del.set_defaults(func=_cmd_delete)

    p_sw = sub.add_parser("switch", help="Make a map the current one")
    p_sw.add_argument("map", help="Map id, id prefix or name")
    p_sw.set_defaults(func=_cmd_switch)

    p_exp = sub.add_parser("export", help="Export a map as JSON")
    p_exp.add_argument("--map", help="Map id, id prefix or name (default: current)")
    p_exp.add_argument("--out", help="Output .json path or directory")
    p_exp.set_defaults(func=_cmd_export)

    p_imp = sub.add_parser("import", help="Import a JSON export as a new map")
    p_imp.add_argument("--file", required=True, help="Input .json path")
    p_imp.add_argument("--name", help="Name for the new map (default: file name)")
    p_imp.set_defaults(func=_cmd_import)

    p_ver = sub.add_parser("verify", help="Check the store and every map payload")
    p_ver.set_defaults(func=_cmd_verify)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
