"""Brewing diary command line for EspressoBox.

Commands:
    beans      List, add, batch, archive, unarchive, show or delete beans
    grinders   List, add or delete grinders
    machines   List, add or delete machines
    sessions   List, log, show or delete brewing sessions, or show stats
    methods    List brew method profiles or seed the built-in ones
    calc       Calculate target yield and water for a dose and ratio
    timer      Time a brew, optionally logging it as a session
    export     Export the diary (json, yaml, csv or xlsx)
    import     Import a JSON or YAML export
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from espressobox import __version__
from espressobox.config import settings
from espressobox.database import close_db, init_db
from espressobox.models import ProcessMethod, RoastLevel
from espressobox.schemas.export import ExportFormat
from espressobox.services import (
    bean_management,
    brew_method_management,
    equipment_management,
    metrics,
    session_management,
)
from espressobox.services.brew_timer import BrewTimer
from espressobox.services.exceptions import EspressoBoxError
from espressobox.services.export_service import export_all_data
from espressobox.services.image_storage import ImageStorageService
from espressobox.services.import_service import ImportMode, detect_format, import_data
from espressobox.services.persistence import storage_errors
from espressobox.services.recipe_calculator import (
    BrewMethod,
    calculate_recipe,
    common_recipes,
    format_ratio_range,
    format_time_range,
    method_tips,
)

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(level=settings.log_level, format=settings.log_format)


def parse_date(value: str) -> datetime:
    """Parse an ISO date or datetime given on the command line, as UTC."""
    try:
        return metrics.ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r} (expected YYYY-MM-DD)")


async def with_db(command, *args: Any, **kwargs: Any) -> Any:
    """Run a command coroutine with the database open."""
    try:
        with storage_errors("connect to database"):
            await init_db()
        return await command(*args, **kwargs)
    finally:
        await close_db()


async def _store_image(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return await ImageStorageService().save_image_file(Path(path))


# =============================================================================
# Beans
# =============================================================================


async def list_beans(archived: Optional[bool], search: Optional[str], sort: str) -> None:
    beans = await bean_management.list_beans(archived=archived, search=search, sort=sort)
    if not beans:
        print("No beans found.")
        return
    remaining = await bean_management.remaining_weights(beans)
    prefs = settings.preferences
    print(f"{'ID':<36}  {'Name':<24} {'Roaster':<18} {'Batch':>5}  {'Fresh':<10} {'Left':>9}")
    print("-" * 110)
    for bean in beans:
        level = metrics.freshness_level(bean.days_from_roast(), settings.metrics)
        flag = " (archived)" if bean.is_archived else ""
        print(
            f"{bean.id:<36}  {bean.display_name[:24]:<24} {bean.display_roaster[:18]:<18} "
            f"{'#' + str(bean.batch_number):>5}  {level.value:<10} "
            f"{prefs.format_weight(remaining[bean.id]):>9}{flag}"
        )


async def add_bean(args: argparse.Namespace) -> None:
    image_path = await _store_image(args.image)
    bean = await bean_management.create_bean(
        name=args.name,
        roaster=args.roaster,
        origin=args.origin,
        roast_level=args.roast_level,
        process=args.process,
        variety=args.variety,
        tasting_notes=args.tasting_notes,
        price=args.price,
        weight=args.weight,
        roast_date=args.roast_date,
        purchase_date=args.purchase_date,
        image_path=image_path,
        notes=args.notes,
    )
    print(f"Added bean {bean.display_name} ({bean.id})")


async def add_batch(args: argparse.Namespace) -> None:
    bean = await bean_management.create_batch_from_bean(
        args.bean_id,
        weight=args.weight,
        roast_date=args.roast_date,
        purchase_date=args.purchase_date,
        price=args.price,
    )
    print(f"Added batch #{bean.batch_number} of {bean.display_name} ({bean.id})")


async def set_archived(bean_id: str, archived: bool) -> None:
    if archived:
        bean = await bean_management.archive_bean(bean_id)
        print(f"Archived {bean.display_name}")
    else:
        bean = await bean_management.unarchive_bean(bean_id)
        print(f"Restored {bean.display_name}")


async def delete_bean(bean_id: str) -> None:
    unlinked = await bean_management.delete_bean(bean_id, ImageStorageService())
    print(f"Deleted bean {bean_id} ({unlinked} sessions unlinked)")


async def show_bean(bean_id: str) -> None:
    bean = await bean_management.get_bean(bean_id)
    summary = await bean_management.bean_summary(bean_id, config=settings.metrics)
    prefs = settings.preferences
    print(f"{bean.display_name} - batch #{bean.batch_number}")
    print(f"  Roaster:     {bean.display_roaster}")
    print(f"  Origin:      {bean.display_origin}")
    print(f"  Roast:       {bean.roast_level.value}, {bean.process.value}, {bean.variety}")
    print(f"  Roasted:     {bean.roast_date:%Y-%m-%d} ({summary.days_from_roast} days ago)")
    print(f"  Freshness:   {summary.freshness.value}")
    print(
        f"  Stock:       {prefs.format_weight(summary.stock.remaining)} of "
        f"{prefs.format_weight(bean.weight)} ({summary.stock.usage_percentage:.0f}% used)"
    )
    if summary.stock.is_finished:
        print("               Finished")
    elif summary.stock.is_low_stock:
        print("               Running low")
    print(f"  Sessions:    {summary.session_count}")
    if bean.tasting_notes:
        print(f"  Notes:       {bean.tasting_notes}")


# =============================================================================
# Equipment
# =============================================================================


async def list_grinders() -> None:
    grinders = await equipment_management.list_grinders()
    if not grinders:
        print("No grinders found.")
        return
    for grinder in grinders:
        print(
            f"{grinder.id}  {grinder.display_name} ({grinder.display_brand}), "
            f"{grinder.burr_type} {grinder.burr_size}mm"
        )


async def add_grinder(args: argparse.Namespace) -> None:
    image_path = await _store_image(args.image)
    grinder = await equipment_management.create_grinder(
        name=args.name,
        brand=args.brand,
        burr_type=args.burr_type,
        burr_size=args.burr_size,
        notes=args.notes,
        image_path=image_path,
    )
    print(f"Added grinder {grinder.display_name} ({grinder.id})")


async def delete_grinder(grinder_id: str) -> None:
    unlinked = await equipment_management.delete_grinder(grinder_id, ImageStorageService())
    print(f"Deleted grinder {grinder_id} ({unlinked} sessions unlinked)")


async def list_machines() -> None:
    machines = await equipment_management.list_machines()
    if not machines:
        print("No machines found.")
        return
    for machine in machines:
        print(
            f"{machine.id}  {machine.display_name} ({machine.display_brand} {machine.model}), "
            f"{machine.boiler_type} boiler, {machine.pressure_bar:.1f} bar"
        )


async def add_machine(args: argparse.Namespace) -> None:
    image_path = await _store_image(args.image)
    machine = await equipment_management.create_machine(
        name=args.name,
        brand=args.brand,
        model=args.model,
        boiler_type=args.boiler_type,
        group_head_type=args.group_head,
        pressure_bar=args.pressure,
        purchase_date=args.purchase_date,
        notes=args.notes,
        image_path=image_path,
    )
    print(f"Added machine {machine.display_name} ({machine.id})")


async def delete_machine(machine_id: str) -> None:
    unlinked = await equipment_management.delete_machine(machine_id, ImageStorageService())
    print(f"Deleted machine {machine_id} ({unlinked} sessions unlinked)")


# =============================================================================
# Sessions
# =============================================================================


async def list_sessions(args: argparse.Namespace) -> None:
    sessions = await session_management.list_sessions(
        bean_id=args.bean,
        grinder_id=args.grinder,
        machine_id=args.machine,
        limit=args.limit,
    )
    if not sessions:
        print("No sessions found.")
        return
    for s in sessions:
        print(
            f"{s.id}  {s.start_time:%Y-%m-%d %H:%M}  {s.brew_method:<12} "
            f"{s.dose_in:>5.1f}g -> {s.yield_out:>5.1f}g  {metrics.format_ratio(s.brew_ratio):<6} "
            f"{metrics.format_brew_time(s.brew_time):>6}  {s.quality_assessment.value}"
        )


async def log_session(args: argparse.Namespace) -> None:
    prefs = settings.preferences
    image_path = await _store_image(args.image)
    session = await session_management.create_session(
        dose_in=args.dose if args.dose is not None else prefs.default_dose_in,
        yield_out=args.yield_out,
        brew_time=args.time,
        brew_method=args.method or prefs.default_brew_method,
        grind_setting=args.grind if args.grind is not None else prefs.default_grind_setting,
        water_temp=args.temp if args.temp is not None else prefs.default_water_temp,
        pressure=args.pressure if args.pressure is not None else prefs.default_pressure,
        rating=args.rating,
        acidity=args.acidity,
        sweetness=args.sweetness,
        bitterness=args.bitterness,
        body_weight=args.body,
        aftertaste=args.aftertaste,
        puck_prep_wdt=args.wdt,
        puck_prep_rdt=args.rdt,
        bean_id=args.bean,
        grinder_id=args.grinder,
        machine_id=args.machine,
        notes=args.notes,
        image_path=image_path,
    )
    print(f"Logged session {session.id}")
    await show_session(session.id)


async def show_session(session_id: str) -> None:
    session = await session_management.get_session(session_id)
    summary = await session_management.session_summary(session_id, settings.metrics)
    prefs = settings.preferences
    print(f"{session.brew_method} on {session.start_time:%Y-%m-%d %H:%M}")
    print(f"  Dose/Yield:  {prefs.format_weight(session.dose_in)} -> {prefs.format_weight(session.yield_out)}")
    print(f"  Ratio:       {metrics.format_ratio(summary.brew_ratio)}")
    print(f"  Time:        {metrics.format_brew_time(session.brew_time)} ({summary.extraction.value})")
    print(f"  Temp:        {prefs.format_temperature(session.water_temp)}, {session.pressure:.1f} bar")
    print(f"  Quality:     {summary.quality.value}")
    print(f"  Taste:       {summary.taste_label}, {summary.balance.value}")
    if session.rating:
        print(f"  Rating:      {session.rating}/5")
    print("  Advice:")
    for advice in summary.recommendations:
        print(f"    - {advice}")


async def delete_session(session_id: str) -> None:
    await session_management.delete_session(session_id, ImageStorageService())
    print(f"Deleted session {session_id}")


async def show_stats() -> None:
    stats = await session_management.history_stats()
    print(f"Sessions:          {stats.total_sessions}")
    print(f"This week:         {stats.sessions_this_week}")
    print(f"Average time:      {metrics.format_brew_time(stats.average_brew_time)}")
    print(f"Average ratio:     {metrics.format_ratio(stats.average_ratio)}")


# =============================================================================
# Brew methods, calculator and timer
# =============================================================================


async def list_methods() -> None:
    profiles = await brew_method_management.list_methods()
    if not profiles:
        print("No brew methods. Run 'espressobox methods seed' to add the defaults.")
        return
    for p in profiles:
        flag = "" if p.is_active else " (inactive)"
        print(
            f"{p.name:<14} {p.default_dose_grams:>5.0f}g  "
            f"{format_ratio_range((p.default_ratio_min, p.default_ratio_max)):<16} "
            f"{format_time_range((p.default_brew_time_min, p.default_brew_time_max)):<12} "
            f"{p.default_water_temp:.0f}°C{flag}"
        )


async def seed_methods() -> None:
    inserted = await brew_method_management.seed_default_methods()
    print(f"Added {len(inserted)} brew method profiles.")


def run_calculator(args: argparse.Namespace) -> None:
    prefs = settings.preferences
    method = BrewMethod.from_tag(args.method or prefs.default_brew_method)
    dose = args.dose if args.dose is not None else prefs.default_dose_in
    ratio = args.ratio if args.ratio is not None else prefs.default_ratio
    result = calculate_recipe(dose, ratio)

    print(f"{method.display_name}: {prefs.format_weight(dose)} at {metrics.format_ratio(ratio)}")
    print(f"  Target yield:  {prefs.format_weight(result.target_yield)}")
    print(f"  Water:         {prefs.format_volume(result.water_amount)}")
    print(f"  Typical ratio: {format_ratio_range(method.typical_ratio)}")
    print(f"  Typical time:  {format_time_range(method.typical_brew_time)}")
    print("  Common recipes:")
    for recipe in common_recipes(method):
        print(f"    {recipe.name:<16} {recipe.dose:.0f}g at 1:{recipe.ratio:g}  {recipe.description}")
    print(f"  Tip: {method_tips(method)}")


async def run_timer(args: argparse.Namespace) -> None:
    def show(elapsed: float) -> None:
        print(f"\r{timer.elapsed_label}", end="", flush=True)

    timer = BrewTimer(tick_interval=settings.timer.tick_interval, on_tick=show)
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, input, "Press Enter to start the shot...")
    timer.start()
    await loop.run_in_executor(None, sys.stdin.readline)
    timer.stop()
    print(f"\rShot time: {timer.elapsed_label}")

    if args.yield_out is None:
        return
    prefs = settings.preferences
    await init_db()
    try:
        session = await session_management.create_session(
            dose_in=args.dose if args.dose is not None else prefs.default_dose_in,
            yield_out=args.yield_out,
            brew_time=round(timer.elapsed, 1),
            start_time=timer.started_at,
            brew_method=prefs.default_brew_method,
            grind_setting=prefs.default_grind_setting,
            water_temp=prefs.default_water_temp,
            pressure=prefs.default_pressure,
            bean_id=args.bean,
        )
        print(f"Logged session {session.id}")
    finally:
        await close_db()


# =============================================================================
# Export / import
# =============================================================================


async def run_export(export_format: str, output_dir: Optional[str]) -> None:
    path = await export_all_data(
        ExportFormat(export_format),
        Path(output_dir) if output_dir else None,
        settings.metrics,
    )
    print(f"Exported to {path}")


async def run_import(file: str, mode: str, file_format: Optional[str]) -> None:
    path = Path(file)
    summary = await import_data(
        path.read_bytes(),
        file_format or detect_format(path),
        ImportMode(mode),
        filename=path.name,
    )
    print(
        f"Imported {summary.beans} beans, {summary.grinders} grinders, "
        f"{summary.machines} machines and {summary.sessions} sessions."
    )
    if summary.replaced:
        print(f"{summary.replaced} existing records were replaced.")
    if summary.unresolved_references:
        print(f"{summary.unresolved_references} references could not be resolved and were cleared.")


# =============================================================================
# Argument parsing
# =============================================================================


def _add_session_refs(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--bean", help="Bean ID")
    parser.add_argument("--grinder", help="Grinder ID")
    parser.add_argument("--machine", help="Machine ID")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="espressobox",
        description="Espresso brewing diary",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Beans
    beans = subparsers.add_parser("beans", help="Manage coffee beans")
    beans_sub = beans.add_subparsers(dest="action", required=True)

    beans_list = beans_sub.add_parser("list", help="List beans")
    archived = beans_list.add_mutually_exclusive_group()
    archived.add_argument("--archived", dest="archived", action="store_const", const=True, default=False,
                          help="Show archived beans only")
    archived.add_argument("--all", dest="archived", action="store_const", const=None,
                          help="Show active and archived beans")
    beans_list.add_argument("--search", "-s", help="Match name, roaster, origin or tasting notes")
    beans_list.add_argument("--sort", choices=[s.value for s in bean_management.BeanSort], default="name")

    beans_add = beans_sub.add_parser("add", help="Add a bean")
    beans_add.add_argument("name")
    beans_add.add_argument("--roaster", default="")
    beans_add.add_argument("--origin", default="")
    beans_add.add_argument("--roast-level", choices=[r.value for r in RoastLevel], default=RoastLevel.MEDIUM.value)
    beans_add.add_argument("--process", choices=[p.value for p in ProcessMethod], default=ProcessMethod.WASHED.value)
    beans_add.add_argument("--variety", default="Arabica")
    beans_add.add_argument("--tasting-notes", default="")
    beans_add.add_argument("--price", type=float, default=0.0)
    beans_add.add_argument("--weight", type=float, default=250.0, help="Bag weight in grams")
    beans_add.add_argument("--roast-date", type=parse_date)
    beans_add.add_argument("--purchase-date", type=parse_date)
    beans_add.add_argument("--image", help="Path to a photo of the bag")
    beans_add.add_argument("--notes", default="")

    beans_batch = beans_sub.add_parser("batch", help="Add a new batch of an existing bean")
    beans_batch.add_argument("bean_id")
    beans_batch.add_argument("--weight", type=float, required=True)
    beans_batch.add_argument("--roast-date", type=parse_date, required=True)
    beans_batch.add_argument("--purchase-date", type=parse_date)
    beans_batch.add_argument("--price", type=float)

    for action, help_text in (
        ("archive", "Archive a bean"),
        ("unarchive", "Restore an archived bean"),
        ("show", "Show freshness and stock for a bean"),
        ("delete", "Delete a bean; its sessions are kept"),
    ):
        beans_sub.add_parser(action, help=help_text).add_argument("bean_id")

    # Grinders
    grinders = subparsers.add_parser("grinders", help="Manage grinders")
    grinders_sub = grinders.add_subparsers(dest="action", required=True)
    grinders_sub.add_parser("list", help="List grinders")
    grinders_add = grinders_sub.add_parser("add", help="Add a grinder")
    grinders_add.add_argument("name")
    grinders_add.add_argument("--brand", default="")
    grinders_add.add_argument("--burr-type", default="Flat")
    grinders_add.add_argument("--burr-size", type=int, default=0, help="Burr size in mm")
    grinders_add.add_argument("--image", help="Path to a photo")
    grinders_add.add_argument("--notes", default="")
    grinders_sub.add_parser("delete", help="Delete a grinder").add_argument("grinder_id")

    # Machines
    machines = subparsers.add_parser("machines", help="Manage espresso machines")
    machines_sub = machines.add_subparsers(dest="action", required=True)
    machines_sub.add_parser("list", help="List machines")
    machines_add = machines_sub.add_parser("add", help="Add a machine")
    machines_add.add_argument("name")
    machines_add.add_argument("--brand", default="")
    machines_add.add_argument("--model", default="")
    machines_add.add_argument("--boiler-type", default="Single")
    machines_add.add_argument("--group-head", default="")
    machines_add.add_argument("--pressure", type=float, default=9.0)
    machines_add.add_argument("--purchase-date", type=parse_date)
    machines_add.add_argument("--image", help="Path to a photo")
    machines_add.add_argument("--notes", default="")
    machines_sub.add_parser("delete", help="Delete a machine").add_argument("machine_id")

    # Sessions
    sessions = subparsers.add_parser("sessions", help="Brewing sessions")
    sessions_sub = sessions.add_subparsers(dest="action", required=True)

    sessions_list = sessions_sub.add_parser("list", help="List sessions, newest first")
    _add_session_refs(sessions_list)
    sessions_list.add_argument("--limit", "-n", type=int)

    sessions_log = sessions_sub.add_parser("log", help="Log a finished brew")
    sessions_log.add_argument("--dose", type=float, help="Dose in grams")
    sessions_log.add_argument("--yield", dest="yield_out", type=float, required=True, help="Yield in grams")
    sessions_log.add_argument("--time", type=float, required=True, help="Brew time in seconds")
    sessions_log.add_argument("--method", choices=[m.value for m in BrewMethod])
    sessions_log.add_argument("--grind")
    sessions_log.add_argument("--temp", type=float, help="Water temperature in °C")
    sessions_log.add_argument("--pressure", type=float, help="Pressure in bar")
    sessions_log.add_argument("--rating", type=int, choices=range(0, 6), default=0)
    for score in ("acidity", "sweetness", "bitterness", "body", "aftertaste"):
        sessions_log.add_argument(f"--{score}", type=int, choices=range(1, 6), default=3)
    sessions_log.add_argument("--wdt", action="store_true", help="WDT used in puck prep")
    sessions_log.add_argument("--rdt", action="store_true", help="RDT used in puck prep")
    sessions_log.add_argument("--image", help="Path to a photo of the shot")
    sessions_log.add_argument("--notes", default="")
    _add_session_refs(sessions_log)

    sessions_sub.add_parser("show", help="Show a session with advice").add_argument("session_id")
    sessions_sub.add_parser("delete", help="Delete a session").add_argument("session_id")
    sessions_sub.add_parser("stats", help="Show history statistics")

    # Methods
    methods = subparsers.add_parser("methods", help="Brew method profiles")
    methods_sub = methods.add_subparsers(dest="action", required=True)
    methods_sub.add_parser("list", help="List brew method profiles")
    methods_sub.add_parser("seed", help="Add any missing built-in profiles")

    # Calculator
    calc = subparsers.add_parser("calc", help="Recipe calculator")
    calc.add_argument("--dose", type=float, help="Dose in grams")
    calc.add_argument("--ratio", type=float, help="Brew ratio (yield / dose)")
    calc.add_argument("--method", choices=[m.value for m in BrewMethod])

    # Timer
    timer = subparsers.add_parser("timer", help="Time a shot")
    timer.add_argument("--dose", type=float, help="Dose in grams, when logging")
    timer.add_argument("--yield", dest="yield_out", type=float, help="Log the shot with this yield")
    timer.add_argument("--bean", help="Bean ID, when logging")

    # Export / import
    export = subparsers.add_parser("export", help="Export the diary")
    export.add_argument("--format", "-f", choices=[f.value for f in ExportFormat], default="json")
    export.add_argument("--output-dir", "-o")

    import_parser = subparsers.add_parser("import", help="Import an export file")
    import_parser.add_argument("file")
    import_parser.add_argument("--mode", choices=[m.value for m in ImportMode], default="insert")
    import_parser.add_argument("--format", "-f", choices=["json", "yaml"])

    return parser


def dispatch(args: argparse.Namespace):
    """Map parsed arguments to the coroutine that runs the command."""
    command, action = args.command, getattr(args, "action", None)

    if command == "beans":
        if action == "list":
            return list_beans(args.archived, args.search, args.sort)
        if action == "add":
            return add_bean(args)
        if action == "batch":
            return add_batch(args)
        if action in ("archive", "unarchive"):
            return set_archived(args.bean_id, action == "archive")
        if action == "show":
            return show_bean(args.bean_id)
        return delete_bean(args.bean_id)

    if command == "grinders":
        if action == "list":
            return list_grinders()
        if action == "add":
            return add_grinder(args)
        return delete_grinder(args.grinder_id)

    if command == "machines":
        if action == "list":
            return list_machines()
        if action == "add":
            return add_machine(args)
        return delete_machine(args.machine_id)

    if command == "sessions":
        if action == "list":
            return list_sessions(args)
        if action == "log":
            return log_session(args)
        if action == "show":
            return show_session(args.session_id)
        if action == "stats":
            return show_stats()
        return delete_session(args.session_id)

    if command == "methods":
        if action == "seed":
            return seed_methods()
        return list_methods()

    if command == "export":
        return run_export(args.format, args.output_dir)

    return run_import(args.file, args.mode, args.format)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging()

    try:
        if args.command == "calc":
            run_calculator(args)
        elif args.command == "timer":
            asyncio.run(run_timer(args))
        else:
            asyncio.run(with_db(lambda: dispatch(args)))

    except EspressoBoxError as e:
        print(f"Error: {e}")
        return 1
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nAborted.")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
