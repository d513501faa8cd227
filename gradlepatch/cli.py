from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

from gradlepatch.core.config import PatcherConfig, load_config
from gradlepatch.core.paths import get_paths
from gradlepatch.integration import SETUP_INSTRUCTIONS, build_orchestrator, check_configuration
from gradlepatch.patching.backup import BackupManager
from gradlepatch.patching.classify import FragmentState
from gradlepatch.patching.errors import FileMissing, PatchError
from gradlepatch.patching.orchestrator import POLICY_BEST_EFFORT


def _parse_overrides(pairs: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for raw in pairs:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip() or not value.strip():
            raise SystemExit(f"FAILURE DETECTED: --set expects key=version, got {raw!r}")
        out[key.strip()] = value.strip()
    return out


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="gradlepatch")
    sub = ap.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", nargs="?", help="Gradle template (default: Assets/Plugins/Android/mainTemplate.gradle)")
    common.add_argument("--config", help="JSON config (default: ProjectSettings/gradlepatch.json)")
    common.add_argument("--toolchain", help="version bundle to use (modern, legacy, ...)")
    common.add_argument("--fragments", help="fragment-set JSON file replacing the built-in fragments")
    common.add_argument("--backup-dir", help="snapshot directory (default: ~/.gradlepatch/backups)")
    common.add_argument("--retention", type=int, help="number of snapshots kept per file")

    p = sub.add_parser("patch", parents=[common], help="bring required fragments up to date")
    p.add_argument("--set", action="append", default=[], metavar="KEY=VERSION", help="override one version")
    p.add_argument("--platform", help="active build platform; patching only happens for android")
    p.add_argument(
        "--best-effort-backup",
        action="store_true",
        help="patch even if the snapshot before adding fragments fails (removals still need one)",
    )
    p.add_argument("--dry-run", action="store_true", help="report what would change, write nothing")

    c = sub.add_parser("check", parents=[common], help="classify fragments without writing")
    c.add_argument("--set", action="append", default=[], metavar="KEY=VERSION", help="override one version")

    sub.add_parser("backups", parents=[common], help="list retained snapshots")
    return ap


def _config_from_args(args: argparse.Namespace) -> PatcherConfig:
    paths = get_paths()
    cfg = load_config(Path(args.config) if args.config else paths.config_path)
    if args.fragments:
        cfg = replace(cfg, fragments_file=args.fragments)
    if args.backup_dir:
        cfg = replace(cfg, backup_dir=args.backup_dir)
    if args.retention is not None:
        if args.retention < 1:
            raise SystemExit(f"FAILURE DETECTED: --retention must be at least 1, got {args.retention}")
        cfg = replace(cfg, backup_retention=args.retention)
    if getattr(args, "best_effort_backup", False):
        cfg = replace(cfg, additive_backup_policy=POLICY_BEST_EFFORT)
    return cfg


def _template_path(args: argparse.Namespace, cfg: PatcherConfig) -> Path:
    if args.file:
        return Path(args.file)
    if cfg.template_path:
        return Path(cfg.template_path)
    return get_paths().template_path


def _cmd_patch(args: argparse.Namespace, cfg: PatcherConfig, path: Path) -> int:
    result = check_configuration(
        path,
        active_platform=args.platform,
        cfg=cfg,
        check_active_platform=args.platform is not None,
        toolchain=args.toolchain,
        overrides=_parse_overrides(args.set),
        dry_run=args.dry_run,
    )
    print(result.message)
    for b in result.backups:
        print(f"Backup: {b}")
    return 0 if result.success else 1


def _cmd_check(args: argparse.Namespace, cfg: PatcherConfig, path: Path) -> int:
    orchestrator = build_orchestrator(cfg, toolchain=args.toolchain, overrides=_parse_overrides(args.set))
    try:
        states = orchestrator.check(path)
    except FileMissing as e:
        print(f"[GradlePatch] {e}")
        print(SETUP_INSTRUCTIONS)
        return 1
    print(f"{path} ({orchestrator.versions.name}):")
    for marker, state in states.items():
        print(f"  {state.value:<16} {marker}")
    return 0 if all(s == FragmentState.correct_present for s in states.values()) else 1


def _cmd_backups(cfg: PatcherConfig, path: Path) -> int:
    manager = BackupManager(cfg.resolved_backup_dir(), cfg.backup_retention)
    records = manager.list_backups(path)
    if not records:
        print(f"no backups of {path} in {manager.backup_dir}")
        return 0
    for rec in records:
        print(f"{rec.created_utc.isoformat()}  {rec.path}")
    return 0


def main(argv: Optional[List[str]] = None, *, verbose: bool = False) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cfg = _config_from_args(args)
    if args.toolchain is None:
        args.toolchain = cfg.toolchain
    path = _template_path(args, cfg)

    try:
        if args.command == "patch":
            return _cmd_patch(args, cfg, path)
        if args.command == "check":
            return _cmd_check(args, cfg, path)
        return _cmd_backups(cfg, path)
    except (ValueError, PatchError) as e:  # bad fragment set or toolchain
        sys.stderr.write(f"Error: {e}\n")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
