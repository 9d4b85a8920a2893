from __future__ import annotations

from typing import Callable

from rich.markup import escape
from rich.text import Text
from textual import events, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Button, DataTable, Footer, Header, Input, Static

from .table_source import FetchError
from .tracker_core import ScheduleSession
from .tracker_render import next_exam_lines, render_pointer_text, render_slot_text

TableLoader = Callable[[], list[list[str]]]


class ScheduleTable(DataTable):
    def _app_nudge(self, delta: int) -> None:
        nudge = getattr(self.app, "action_nudge_pointer", None)
        if callable(nudge):
            nudge(delta)

    def on_key(self, event: events.Key) -> None:
        if event.key in {"plus", "equals_sign"} or event.character in {"+", "="}:
            self._app_nudge(1)
            event.prevent_default()
            event.stop()
            return
        if event.key == "minus" or event.character == "-":
            self._app_nudge(-1)
            event.prevent_default()
            event.stop()
            return


class ExamTrackerApp(App[None]):
    TITLE = "Exam Schedule Tracker"
    AUTO_FOCUS = "#schedule"

    CSS = """
    Screen { layout: vertical; }
    #topbar { height: 3; border: round #3a86ff; padding: 0 1; }
    #controls { height: 5; padding: 0 1; }
    #student { width: 30; border: round #2ec4b6; }
    #controls Button { margin-left: 1; }
    #schedule { height: 1fr; border: round #f72585; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("/", "focus_student", "Student"),
        Binding("x", "clear_student", "Clear"),
        Binding("r", "refresh", "Refresh"),
        Binding("]", "nudge_pointer(1)", "Pointer +"),
        Binding("[", "nudge_pointer(-1)", "Pointer -"),
    ]

    def __init__(
        self,
        session: ScheduleSession,
        loader: TableLoader | None = None,
        source: str = "-",
        *,
        load_on_mount: bool = False,
    ) -> None:
        super().__init__()
        self.session = session
        self.loader = loader
        self.source = source
        self.load_on_mount = load_on_mount
        self.is_loading = False
        self.last_error: str | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id="topbar")
        with Horizontal(id="controls"):
            yield Input(
                value=self.session.query,
                placeholder="Student id",
                id="student",
            )
            yield Button("Clear", id="clear")
            yield Button("Refresh", id="refresh", variant="primary")
        yield ScheduleTable(id="schedule", cursor_type="row")
        yield Footer()

    def on_mount(self) -> None:
        self._refresh_grid()
        self.query_one("#schedule", DataTable).focus()
        if self.load_on_mount:
            self.action_refresh()

    def action_focus_student(self) -> None:
        self.query_one("#student", Input).focus()

    def action_clear_student(self) -> None:
        self.query_one("#student", Input).value = ""
        self.session.clear_query()
        self._refresh_grid()

    def action_nudge_pointer(self, delta: int) -> None:
        row_index = self._current_row_index()
        if row_index is None:
            return
        self.session.nudge(row_index, delta)
        self._refresh_grid(keep_row=row_index)

    def action_refresh(self) -> None:
        if self.loader is None:
            self.notify("No schedule source configured.", severity="warning", timeout=2.0)
            return
        self.is_loading = True
        self._refresh_topbar()
        self._load_table(self.loader)

    @work(thread=True)
    def _load_table(self, loader: TableLoader) -> None:
        try:
            table = loader()
        except FetchError as error:
            self.call_from_thread(self._refresh_failed, str(error))
            return
        self.call_from_thread(self._apply_refresh, table)

    def _apply_refresh(self, table: list[list[str]]) -> None:
        self.session.apply_refresh(table)
        self.is_loading = False
        self.last_error = None
        self._refresh_grid(keep_row=self._current_row_index())
        self.notify(f"Loaded {len(self.session.rows)} subject(s)", timeout=1.2)

    def _refresh_failed(self, message: str) -> None:
        self.is_loading = False
        self.last_error = message
        self._refresh_topbar()
        self.notify(f"Could not load schedule: {message}", severity="error", timeout=3.0)

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "student":
            return
        self.session.set_query(event.value)
        self._refresh_grid(keep_row=self._current_row_index())

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "clear":
            self.action_clear_student()
            return
        if event.button.id == "refresh":
            self.action_refresh()

    def _current_row_index(self) -> int | None:
        table = self.query_one("#schedule", DataTable)
        if table.row_count == 0:
            return None
        row = table.cursor_row
        if row < 0 or row >= len(self.session.rows):
            return None
        return row

    def _refresh_grid(self, keep_row: int | None = None) -> None:
        table = self.query_one("#schedule", DataTable)
        table.clear(columns=True)
        table.add_column("subject", key="subject")
        table.add_column("pointer", key="pointer")
        for ordinal in range(1, self.session.max_slot_count() + 1):
            table.add_column(str(ordinal), key=f"slot-{ordinal}")

        width = self.session.max_slot_count()
        for view in self.session.row_views():
            cells: list[Text | str] = [
                Text(view.row.subject or "-", style="bold"),
                render_pointer_text(view.state.effective_pointer, view.row.slot_count),
            ]
            for occupant, highlight in zip(view.row.slots, view.highlights):
                cells.append(render_slot_text(occupant, highlight))
            cells.extend([""] * (width - view.row.slot_count))
            table.add_row(*cells, key=str(view.index))

        if keep_row is not None and table.row_count:
            table.move_cursor(row=min(keep_row, table.row_count - 1))
        self._refresh_topbar()

    def _refresh_topbar(self) -> None:
        if self.is_loading:
            state = "loading…"
        elif self.last_error:
            state = f"[red]error: {escape(self.last_error)}[/red]"
        else:
            state = "ready"
        next_lines = next_exam_lines(self.session)
        next_display = escape(", ".join(next_lines)) if next_lines else "-"
        text = (
            f"[b]{escape(self.source)}[/b]  "
            f"subjects={len(self.session.rows)}  "
            f"student={escape(self.session.query) or '-'}  "
            f"state={state}\n"
            f"next: {next_display}  "
            "[dim]keys: +/] forward, -/\\[ back, / student, x clear, r refresh, q quit[/dim]"
        )
        self.query_one("#topbar", Static).update(text)


def launch_textual_tracker(session: ScheduleSession, loader: TableLoader, source: str) -> int:
    app = ExamTrackerApp(session, loader, source, load_on_mount=True)
    app.run()
    return 0
