#!/usr/bin/env python3
"""
Panel Runner
Walks the advance appointment wizard from a terminal against a running
Advance Appointment service (ADVANCE_APPOINTMENT_URL).

    python run_panel.py https://shop.tekmetric.com/admin/shop/1/repair-orders/123
    python run_panel.py 123 --months 9 --day 3 --type wait --notes "Needs loaner" --submit
"""

import os
import sys
import asyncio
import argparse
import logging
from datetime import date
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Add app to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app.models.enums import ServiceGroup
from app.panel import PanelController, PanelPersistence, get_panel_storage
from app.panel import commands
from app.panel.views import ScheduleView, ConfirmView, DoneView, ErrorView
from app.panel.recommendation import format_miles
from app.services.panel_client import AdvanceAppointmentClient

logging.basicConfig(level=logging.WARNING)


def print_view(view):
    print("\n" + "=" * 60)
    print(view.title.upper())
    print("=" * 60)

    if isinstance(view, ErrorView):
        print(f"ERROR: {view.message}")
        print(view.hint)
    elif isinstance(view, ScheduleView):
        print(view.subtitle)
        print(f"\nInterval: {view.month_interval} months / {format_miles(view.mile_interval)} miles")
        print(f"Next recommended visit: {view.recommended_date:%b %d, %Y}")
        if view.recommended_mileage:
            print(f"Approx. mileage: {format_miles(view.recommended_mileage)} miles")
        print("\nDates:")
        for idx, option in enumerate(view.date_options):
            marker = "*" if option.selected else " "
            print(f"  [{idx}]{marker} {option.date:%a %b %d}  {option.booked} booked")
        if view.counts_status:
            print(view.counts_status)
        if view.scheduler_url:
            print(f"\nFull scheduler: {view.scheduler_url}")
    elif isinstance(view, ConfirmView):
        mileage = f"{format_miles(view.mileage)} miles" if view.mileage else "mileage TBD"
        print(f"{view.date:%b %d, %Y} · {mileage} · {view.appointment_type}")
        for label, options in (("Repeat services", view.repeat_options), ("Declined services", view.declined_options)):
            print(f"\n{label}:")
            if not options:
                print("  (none)")
            for option in options:
                print(f"  [{'x' if option.selected else ' '}] {option.id}: {option.name}")
        print("\nPurpose of visit:")
        print("-" * 40)
        print(view.purpose_preview)
        print("-" * 40)
        if view.error:
            print(f"\nFailed to schedule appointment: {view.error}")
    elif isinstance(view, DoneView):
        print(f"Confirmation ID: {view.confirmation_id}")
        print(f"{view.start_time:%A, %b %d, %Y %I:%M %p}")
        if view.mileage:
            print(f"Est. mileage: {format_miles(view.mileage)}")
        print(f"Type: {view.appointment_type_label}")
        if view.scheduler_url:
            print(f"View in scheduler: {view.scheduler_url}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Advance appointment panel (terminal)")
    parser.add_argument("ro", help="Repair order page URL or RO id")
    parser.add_argument("--months", type=int, help="Month interval (3-12)")
    parser.add_argument("--miles", type=int, help="Mile interval (3000-15000, step 1000)")
    parser.add_argument("--day", help="Window index 0-4 (Mon-Fri) or YYYY-MM-DD")
    parser.add_argument("--type", choices=["dropoff", "wait"], help="Appointment type")
    parser.add_argument("--skip", action="append", default=[], help="Service id to leave unchecked")
    parser.add_argument("--notes", help="Customer instructions")
    parser.add_argument("--submit", action="store_true", help="Schedule the appointment")
    parser.add_argument("--close", action="store_true", help="Close the panel (clears saved state)")
    return parser.parse_args(argv)


async def run(args):
    ro = args.ro if "/" in args.ro else f"/repair-orders/{args.ro}"
    persistence = PanelPersistence(get_panel_storage())
    panel = PanelController(AdvanceAppointmentClient(), persistence)

    view = await panel.dispatch(commands.Open(url=ro))
    if isinstance(view, ErrorView):
        print_view(view)
        return 1

    # A restored session may resume on the confirm screen
    if panel.state.screen == 2:
        view = await panel.dispatch(commands.Back())

    if panel.state.screen == 1:
        if args.months:
            await panel.dispatch(commands.ChangeMonthInterval(args.months))
        if args.miles:
            await panel.dispatch(commands.ChangeMileInterval(args.miles))
        if args.day:
            if args.day.isdigit():
                day = panel.view.date_options[int(args.day)].date
            else:
                day = date.fromisoformat(args.day)
            await panel.dispatch(commands.SelectDate(day))
        if panel.pending_count_fetch:
            await panel.pending_count_fetch
        print_view(panel.refresh())

        view = await panel.dispatch(commands.Continue())
        if args.type:
            view = await panel.dispatch(commands.SetAppointmentType(args.type))
        for service_id in args.skip:
            for group in (ServiceGroup.REPEAT, ServiceGroup.DECLINED):
                options = view.repeat_options if group == ServiceGroup.REPEAT else view.declined_options
                if any(option.id == service_id for option in options):
                    view = await panel.dispatch(commands.ToggleService(group, service_id, selected=False))
        if args.notes is not None:
            view = await panel.dispatch(commands.SetNotes(args.notes))
        if args.submit:
            view = await panel.dispatch(commands.Submit())

    print_view(view)

    if args.close:
        await panel.dispatch(commands.Close())
        print("\nPanel closed.")

    return 1 if getattr(view, "error", None) else 0


def main(argv=None):
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
