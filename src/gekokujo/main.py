"""Admin command line for a gekokujo game directory."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from gekokujo.config import Settings, get_settings
from gekokujo.domain import models as dm
from gekokujo.domain.enums import ActorRole
from gekokujo.domain.results import Result
from gekokujo.services import GameService

ADMIN = dm.Actor(role=ActorRole.ADMIN, user_id="cli")


def _report(result: Result[object], success: str) -> int:
    if result.error is None:
        print(success)
        return 0
    print(f"error ({result.error.kind}): {result.error.message}", file=sys.stderr)
    return 1


def _cmd_status(service: GameService, args: argparse.Namespace) -> int:
    state = service.game_state()
    print(f"year {state.current_year}{' (locked)' if state.is_locked else ''}")
    for row in service.faction_summaries():
        print(
            f"{row.id}  {row.name:<8} tax={row.tax_rate:.1f} treasury={row.treasury:,.0f} "
            f"surface={row.surface_kokudaka:,.0f} soldiers={row.total_soldiers} "
            f"territories={row.territory_count} legions={row.legion_count}"
        )
    return 0


def _cmd_advance_year(service: GameService, args: argparse.Namespace) -> int:
    result = service.advance_year(ADMIN)
    if result.success and result.data is not None:
        for entry in result.data.factions:
            deficit = f" deficit={entry.deficit:,.0f}" if entry.deficit else ""
            print(
                f"{entry.faction_name}: income={entry.income:,.0f} "
                f"upkeep={entry.maintenance_cost:,.0f} treasury={entry.new_treasury:,.0f}"
                f" growth={entry.total_growth:+d}{deficit}"
            )
        return _report(result, f"advanced to year {result.data.year}")
    return _report(result, "")


def _cmd_lock(service: GameService, args: argparse.Namespace) -> int:
    return _report(service.lock_game(ADMIN), "game locked")


def _cmd_unlock(service: GameService, args: argparse.Namespace) -> int:
    return _report(service.unlock_game(ADMIN), "game unlocked")


def _cmd_snapshots(service: GameService, args: argparse.Namespace) -> int:
    for summary in service.list_snapshots():
        print(
            f"{summary.id}  {summary.timestamp.isoformat()}  year={summary.current_year}  "
            f"operation={summary.operation_id}"
        )
    return 0


def _cmd_operations(service: GameService, args: argparse.Namespace) -> int:
    faction_id = dm.FactionID(args.faction) if args.faction else None
    for record in service.recent_operations(args.limit, faction_id=faction_id):
        marker = "*" if record.snapshot_id else " "
        print(
            f"{marker} {record.id}  {record.timestamp.isoformat()}  {record.user_type}:"
            f"{record.user_id}  {record.action}  {record.faction_id or '-'}"
        )
    return 0


def _cmd_summary(service: GameService, args: argparse.Namespace) -> int:
    summary = service.game_status_summary()
    print(
        f"year {summary.current_year}{' (locked)' if summary.is_locked else ''}: "
        f"{summary.faction_count} factions, {summary.total_territories} territories, "
        f"{summary.total_legions} legions, {summary.recent_operations_count} logged operations"
    )
    return 0


def _cmd_accounting(service: GameService, args: argparse.Namespace) -> int:
    faction_id = dm.FactionID(args.faction) if args.faction else None
    if args.add is not None:
        if faction_id is None or args.year is None:
            print("error: --add needs --year and --faction", file=sys.stderr)
            return 2
        added = service.add_accounting_log(
            ADMIN, args.year, faction_id, args.add, should_calculate=args.calculate
        )
        return _report(added, f"accounting note {added.data.id if added.data else ''} added")
    if args.delete_year is not None:
        deleted = service.delete_accounting_logs_by_year(ADMIN, args.delete_year)
        return _report(deleted, f"{deleted.data} notes deleted for year {args.delete_year}")
    result = service.accounting_logs(ADMIN, year=args.year, faction_id=faction_id)
    for entry in result.data or []:
        marker = "!" if entry.should_calculate else " "
        print(f"{marker} {entry.id}  year={entry.year}  {entry.faction_name}  {entry.content}")
    return _report(result, f"{len(result.data or [])} notes")


def _cmd_rollback(service: GameService, args: argparse.Namespace) -> int:
    return _report(
        service.rollback_to_operation(ADMIN, dm.OperationID(args.operation_id)),
        f"rolled back to operation {args.operation_id}",
    )


def _cmd_dashboard(service: GameService, args: argparse.Namespace) -> int:
    result = service.faction_dashboard(dm.FactionID(args.faction_id))
    if result.data is None:
        return _report(result, "")
    board = result.data
    calc = board.calculation
    print(f"{board.faction.name} ({board.faction.leader_name})")
    print(f"  treasury        {board.faction.treasury:,.0f}")
    print(f"  tax rate        {board.faction.tax_rate:.1f}")
    print(f"  territory yield {calc.territory_kokudaka:,.0f}")
    print(f"  surface yield   {calc.surface_kokudaka:,.0f}")
    print(f"  income          {calc.income:,.0f}")
    print(f"  upkeep          {calc.maintenance_cost.total:,.0f}")
    print(
        f"  soldiers        {calc.total_soldiers} / {calc.max_recruitable_soldiers}"
        f" (ratio {calc.soldier_maintenance_ratio:.2f})"
    )
    print(f"  armament        {board.armament_level_name}")
    for track, status in board.investments.items():
        print(f"  {track:<15} {status['points']} ({status['level_name']})")
    for legion in board.legions:
        print(f"  legion {legion.name} @ {legion.location_name}: {legion.soldier_count}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Administer a gekokujo game")
    parser.add_argument("--data-dir", type=Path, help="Override the data directory")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show the clock and every faction").set_defaults(
        handler=_cmd_status
    )
    sub.add_parser("advance-year", help="Settle the year for every faction").set_defaults(
        handler=_cmd_advance_year
    )
    sub.add_parser("lock", help="Reject player operations").set_defaults(handler=_cmd_lock)
    sub.add_parser("unlock", help="Accept player operations again").set_defaults(
        handler=_cmd_unlock
    )
    sub.add_parser("snapshots", help="List stored snapshots").set_defaults(
        handler=_cmd_snapshots
    )

    operations = sub.add_parser("operations", help="List recent operations")
    operations.add_argument("--limit", type=int, default=20)
    operations.add_argument("--faction", help="Only operations filed against this faction")
    operations.set_defaults(handler=_cmd_operations)

    sub.add_parser("summary", help="Show headline counts for the game").set_defaults(
        handler=_cmd_summary
    )

    accounting = sub.add_parser("accounting", help="List or edit accounting notes")
    accounting.add_argument("--year", type=int)
    accounting.add_argument("--faction")
    accounting.add_argument("--add", metavar="TEXT", help="File a new note")
    accounting.add_argument(
        "--calculate", action="store_true", help="Mark the new note for settlement"
    )
    accounting.add_argument("--delete-year", type=int, metavar="YEAR")
    accounting.set_defaults(handler=_cmd_accounting)

    rollback = sub.add_parser("rollback", help="Restore the snapshot of an operation")
    rollback.add_argument("operation_id")
    rollback.set_defaults(handler=_cmd_rollback)

    dashboard = sub.add_parser("dashboard", help="Show one faction's figures")
    dashboard.add_argument("faction_id")
    dashboard.set_defaults(handler=_cmd_dashboard)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.data_dir is not None:
        settings = Settings(data_dir=args.data_dir)
        settings.data_dir.mkdir(parents=True, exist_ok=True)
    else:
        settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    service = GameService.from_settings(settings)
    return args.handler(service, args)


if __name__ == "__main__":
    sys.exit(main())
