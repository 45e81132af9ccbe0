"""
Panel Controller

Owns one PanelState and drives the three-screen advance appointment wizard:

1. Schedule  - month/mile interval, recommended date, Mon-Fri date picker
2. Confirm   - drop-off/wait, repeat + declined services, notes, preview
3. Done      - confirmation (terminal until the panel is closed)

Commands from the front end go through dispatch(), which applies the
transition, persists the state and returns a freshly computed view.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Callable, Dict, List, Optional

from app.models.enums import AppointmentType, PanelScreen, ServiceGroup
from app.panel import commands
from app.panel.jobs import ServiceItem, get_performed_services, get_declined_services
from app.panel.purpose import EMPTY_PREVIEW, build_appointment_title, compose_purpose_of_visit
from app.panel.recommendation import (
    Recommendation,
    date_key,
    five_day_window,
    is_valid_mile_interval,
    is_valid_month_interval,
    mile_options,
    miles_for_month_interval,
    month_options,
    recommend,
    week_key,
)
from app.panel.state import PanelState
from app.panel.storage import PanelPersistence
from app.panel.urls import page_origin, resolve_ro_id, scheduler_url
from app.panel.views import (
    ClosedView,
    ConfirmView,
    DateOption,
    DoneView,
    ErrorView,
    LoadingView,
    ScheduleView,
    ServiceOption,
)
from app.services.panel_client import PanelDataError, SubmissionError
from app.services.shop_time import get_shop_timezone, local_midnight, to_utc_iso

logger = logging.getLogger(__name__)

# Appointments are booked as a one-hour slot at the start of the shop day
APPOINTMENT_START = time(8, 0)
APPOINTMENT_DURATION = timedelta(hours=1)

# Placeholders for values the RO or the booking response did not provide
NO_CONFIRMATION_ID = "—"
MISSING_VALUE = "—"


class InvalidTransition(Exception):
    """Command is not allowed on the current screen"""


# Screens each command may be dispatched from (Open/Close: any)
_ALLOWED_SCREENS = {
    commands.SelectDate: {PanelScreen.SCHEDULE},
    commands.ChangeMonthInterval: {PanelScreen.SCHEDULE},
    commands.ChangeMileInterval: {PanelScreen.SCHEDULE},
    commands.Continue: {PanelScreen.SCHEDULE},
    commands.Back: {PanelScreen.CONFIRM},
    commands.SetAppointmentType: {PanelScreen.CONFIRM},
    commands.ToggleService: {PanelScreen.CONFIRM},
    commands.SetNotes: {PanelScreen.CONFIRM},
    commands.Submit: {PanelScreen.CONFIRM},
}


class PanelController:
    """State machine for one panel session"""

    def __init__(
        self,
        backend,
        persistence: PanelPersistence,
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
        on_render: Optional[Callable[[Any], None]] = None
    ):
        self.backend = backend
        self.persistence = persistence
        self.tz = tz or get_shop_timezone()
        self._clock = clock or (lambda: datetime.now(self.tz))
        self.on_render = on_render

        self.state = PanelState()
        self.view: Any = ClosedView()
        self.closed = True
        self.origin = ""
        self.load_error: Optional[str] = None
        self.submit_error: Optional[str] = None
        self.submitting = False
        self.confirmation_id: Optional[str] = None
        self.pending_count_fetch: Optional[asyncio.Task] = None
        self._count_fetches: Dict[str, asyncio.Task] = {}

        self._handlers = {
            commands.Open: self._open,
            commands.SelectDate: self._select_date,
            commands.ChangeMonthInterval: self._change_month_interval,
            commands.ChangeMileInterval: self._change_mile_interval,
            commands.Continue: self._continue,
            commands.Back: self._back,
            commands.SetAppointmentType: self._set_appointment_type,
            commands.ToggleService: self._toggle_service,
            commands.SetNotes: self._set_notes,
            commands.Submit: self._submit,
            commands.Close: self._close,
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, command) -> Any:
        """Apply a command and return the new view"""
        handler = self._handlers.get(type(command))
        if handler is None:
            raise InvalidTransition(f"Unknown command: {type(command).__name__}")

        allowed = _ALLOWED_SCREENS.get(type(command))
        if allowed is not None:
            if self.closed or self.state.ro_data is None or self.load_error:
                raise InvalidTransition(f"{type(command).__name__} requires an open panel with RO data")
            if self.state.screen not in allowed:
                raise InvalidTransition(
                    f"{type(command).__name__} is not allowed on screen {int(self.state.screen)}"
                )

        await handler(command)
        if not self.closed:
            self.persist()
        return self.refresh()

    def refresh(self) -> Any:
        """Recompute the current view and hand it to the front end"""
        self.view = self.render()
        if self.on_render:
            self.on_render(self.view)
        return self.view

    def persist(self) -> None:
        self.persistence.save_state(self.state)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def today(self) -> date:
        return self._clock().astimezone(self.tz).date()

    def selected_day(self) -> Optional[date]:
        selected = self.state.appointment.date
        return selected.astimezone(self.tz).date() if selected else None

    def recalculate(self) -> Recommendation:
        """Apply the smart recommendation to the draft (idempotent)"""
        ro = self.state.ro_data
        rec = recommend(
            self.state.month_interval,
            self.state.mile_interval,
            ro.mileage if ro else None,
            self.today()
        )
        self.state.appointment.mileage = rec.mileage
        if self.state.appointment.date is None:
            self.state.appointment.date = local_midnight(rec.date, self.tz)
        self.persist()
        return rec

    def performed_services(self) -> List[ServiceItem]:
        return get_performed_services(self.state.ro_data)

    def declined_services(self) -> List[ServiceItem]:
        return get_declined_services(self.state.ro_data)

    def purpose_of_visit(self) -> str:
        return compose_purpose_of_visit(
            self.performed_services(),
            self.declined_services(),
            self.state.repeat_services,
            self.state.declined_services,
            self.state.appointment.type,
            self.state.customer_notes
        )

    def build_submission(self) -> Dict[str, Any]:
        """Booking request for POST /appointments"""
        ro = self.state.ro_data
        customer_id = ro.customer.id if ro and ro.customer else None
        vehicle_id = ro.vehicle.id if ro and ro.vehicle else None
        if ro is None or ro.shop_id is None or customer_id is None or vehicle_id is None:
            raise SubmissionError("Repair order is missing shop, customer or vehicle details")
        day = self.selected_day()
        if day is None:
            raise SubmissionError("No appointment date selected")

        start_time = datetime.combine(day, APPOINTMENT_START, tzinfo=self.tz)
        end_time = start_time + APPOINTMENT_DURATION
        return {
            "shopId": ro.shop_id,
            "customerId": customer_id,
            "vehicleId": vehicle_id,
            "title": build_appointment_title(self.state.month_interval, self.state.mile_interval),
            "purposeOfVisit": self.purpose_of_visit(),
            "appointmentType": self.state.appointment.type.value,
            "startTime": to_utc_iso(start_time),
            "endTime": to_utc_iso(end_time),
            "mileage": self.state.appointment.mileage
        }

    # ------------------------------------------------------------------
    # Appointment counts
    # ------------------------------------------------------------------

    def _ensure_appointment_counts(self, window: List[date]) -> None:
        """Start a count fetch when the visible week changed and none is in flight for it"""
        ro = self.state.ro_data
        if ro is None or ro.shop_id is None:
            return

        next_key = week_key(ro.shop_id, window)
        if self.state.appointment_count_week_key == next_key:
            return

        self.state.appointment_counts_loading = True
        self.state.appointment_count_week_key = next_key
        task = self._count_fetches.get(next_key)
        if task is None:
            task = asyncio.create_task(
                self._fetch_appointment_counts(self.state, next_key, ro.shop_id, window[0], window[-1])
            )
            self._count_fetches[next_key] = task
        self.pending_count_fetch = task

    def _forget_count_fetches(self) -> None:
        # Fetches still running complete, but none of them is pending any more
        self._count_fetches = {}
        self.pending_count_fetch = None

    async def _fetch_appointment_counts(
        self,
        state: PanelState,
        key: str,
        shop_id,
        start: date,
        end: date
    ) -> None:
        this_fetch = asyncio.current_task()
        try:
            counts = await self.backend.fetch_appointment_counts(shop_id, start, end)
        except Exception as e:
            logger.warning(f"[Panel] Appointment count fetch failed for {key}: {e}")
            counts = {}
        finally:
            if self._count_fetches.get(key) is this_fetch:
                del self._count_fetches[key]

        # Superseded by a newer week, or the panel was closed meanwhile
        if state is not self.state or this_fetch is not self.pending_count_fetch:
            return

        state.appointment_counts = counts or {}
        state.appointment_counts_loading = False
        self.persist()
        if state.screen == PanelScreen.SCHEDULE and not self.closed:
            self.refresh()

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    async def _open(self, command: commands.Open) -> None:
        self.persistence.set_panel_open(True)
        self._forget_count_fetches()
        self.state = self.persistence.restore_state(self.tz)
        self.closed = False
        self.load_error = None
        self.submit_error = None
        self.confirmation_id = None
        self.origin = page_origin(command.url)

        ro_id = resolve_ro_id(command.url, self.state.source_ro_id)
        if ro_id:
            try:
                snapshot = await self.backend.fetch_repair_order(ro_id)
                self.state.load_repair_order(snapshot, ro_id)
                logger.info(f"[Panel] Loaded RO {ro_id} ({len(snapshot.jobs)} jobs)")
            except PanelDataError as e:
                if self.state.ro_data is None:
                    logger.error(f"[Panel] Could not load RO {ro_id}: {e}")
                    self.load_error = "Failed to load repair order data."
                else:
                    logger.warning(f"[Panel] Using cached RO data, refresh failed: {e}")
        elif self.state.ro_data is None:
            logger.error("[Panel] No RO context available")
            self.load_error = "No RO context available"

    async def _select_date(self, command: commands.SelectDate) -> None:
        day = command.date
        if isinstance(day, datetime):
            day = day.astimezone(self.tz).date()
        self.state.appointment.date = local_midnight(day, self.tz)

    async def _change_month_interval(self, command: commands.ChangeMonthInterval) -> None:
        if not is_valid_month_interval(command.months):
            raise ValueError(f"Month interval must be between 3 and 12, got {command.months}")
        self.state.month_interval = command.months
        self.state.mile_interval = miles_for_month_interval(command.months)
        self.state.appointment.date = None

    async def _change_mile_interval(self, command: commands.ChangeMileInterval) -> None:
        if not is_valid_mile_interval(command.miles):
            raise ValueError(f"Mile interval must be 3,000-15,000 in steps of 1,000, got {command.miles}")
        self.state.mile_interval = command.miles
        self.state.appointment.date = None

    async def _continue(self, command: commands.Continue) -> None:
        # Default to "all" only while a group is empty so edits survive Back/Continue
        if not self.state.repeat_services:
            self.state.repeat_services = {s.stable_id for s in self.performed_services()}
        if not self.state.declined_services:
            self.state.declined_services = {s.stable_id for s in self.declined_services()}
        self.state.screen = PanelScreen.CONFIRM

    async def _back(self, command: commands.Back) -> None:
        self.state.screen = PanelScreen.SCHEDULE

    async def _set_appointment_type(self, command: commands.SetAppointmentType) -> None:
        self.state.appointment.type = AppointmentType.parse(command.type)

    async def _toggle_service(self, command: commands.ToggleService) -> None:
        if command.group == ServiceGroup.REPEAT:
            services, selected = self.performed_services(), self.state.repeat_services
        else:
            services, selected = self.declined_services(), self.state.declined_services

        service_id = str(command.service_id)
        if service_id not in {s.stable_id for s in services}:
            raise ValueError(f"Unknown {ServiceGroup(command.group).value} service: {service_id}")

        checked = service_id not in selected if command.selected is None else command.selected
        if checked:
            selected.add(service_id)
        else:
            selected.discard(service_id)

    async def _set_notes(self, command: commands.SetNotes) -> None:
        self.state.customer_notes = command.text

    async def _submit(self, command: commands.Submit) -> None:
        if self.submitting:
            return

        self.submitting = True
        self.submit_error = None
        try:
            payload = self.build_submission()
            result = await self.backend.create_appointment(payload)
        except SubmissionError as e:
            logger.warning(f"[Panel] Schedule error: {e}")
            self.submit_error = str(e) or "Please try again."
            return
        finally:
            self.submitting = False

        appointment = result.get("appointment") if isinstance(result, dict) else None
        if not isinstance(appointment, dict):
            appointment = {}
        appointment_id = appointment.get("data")
        if appointment_id is None:
            appointment_id = appointment.get("id")
        self.confirmation_id = str(appointment_id) if appointment_id is not None else NO_CONFIRMATION_ID
        self.state.screen = PanelScreen.DONE
        logger.info(f"[Panel] Appointment scheduled: {self.confirmation_id}")

    async def _close(self, command: commands.Close) -> None:
        self.persistence.clear_panel_open()
        self.persistence.clear_state()
        self._forget_count_fetches()
        self.state = PanelState()
        self.closed = True
        self.load_error = None
        self.submit_error = None
        self.confirmation_id = None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> Any:
        if self.closed:
            return ClosedView()
        if self.load_error:
            return ErrorView()
        if self.state.ro_data is None:
            return LoadingView()
        if self.state.screen == PanelScreen.CONFIRM and self.state.appointment.date is not None:
            return self._render_confirm()
        if self.state.screen == PanelScreen.DONE:
            return self._render_done()
        return self._render_schedule()

    def _render_schedule(self) -> ScheduleView:
        self.state.screen = PanelScreen.SCHEDULE
        ro = self.state.ro_data
        rec = self.recalculate()
        window = five_day_window(rec.date)
        self._ensure_appointment_counts(window)

        # Interval edits can leave the old selection outside the new week
        if self.selected_day() not in window:
            self.state.appointment.date = local_midnight(window[0], self.tz)
        selected = self.selected_day()

        self.persist()
        return ScheduleView(
            ro_number=str(ro.ro_number) if ro.ro_number is not None else MISSING_VALUE,
            customer_name=ro.customer.full_name if ro.customer else "",
            vehicle=ro.vehicle.display_name if ro.vehicle else "",
            month_interval=self.state.month_interval,
            mile_interval=self.state.mile_interval,
            month_options=month_options(),
            mile_options=mile_options(),
            selected_date=selected,
            recommended_date=rec.date,
            recommended_mileage=self.state.appointment.mileage,
            date_options=[
                DateOption(
                    date=day,
                    key=date_key(day),
                    booked=self.state.appointment_counts.get(date_key(day), 0),
                    selected=day == selected
                )
                for day in window
            ],
            counts_loading=self.state.appointment_counts_loading,
            scheduler_url=self._scheduler_url(self.state.appointment.date)
        )

    def _render_confirm(self) -> ConfirmView:
        self.state.screen = PanelScreen.CONFIRM
        performed = self.performed_services()
        declined = self.declined_services()

        return ConfirmView(
            date=self.selected_day(),
            mileage=self.state.appointment.mileage,
            appointment_type=self.state.appointment.type.value,
            repeat_options=[
                ServiceOption(s.stable_id, s.name, s.stable_id in self.state.repeat_services)
                for s in performed
            ],
            declined_options=[
                ServiceOption(s.stable_id, s.name, s.stable_id in self.state.declined_services)
                for s in declined
            ],
            customer_notes=self.state.customer_notes,
            purpose_preview=self.purpose_of_visit() or EMPTY_PREVIEW,
            submitting=self.submitting,
            error=self.submit_error
        )

    def _render_done(self) -> DoneView:
        day = self.selected_day() or self.today()
        start_time = datetime.combine(day, APPOINTMENT_START, tzinfo=self.tz)
        return DoneView(
            confirmation_id=self.confirmation_id or NO_CONFIRMATION_ID,
            start_time=start_time,
            mileage=self.state.appointment.mileage,
            appointment_type_label=self.state.appointment.type.to_label(),
            scheduler_url=self._scheduler_url(start_time)
        )

    def _scheduler_url(self, moment: Optional[datetime]) -> Optional[str]:
        ro = self.state.ro_data
        if not self.origin or ro is None or ro.shop_id is None or moment is None:
            return None
        return scheduler_url(self.origin, ro.shop_id, moment, self.state.source_ro_id)
