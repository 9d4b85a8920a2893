from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .tracker_core import SLOT_FUTURE, SLOT_NEXT, SLOT_PAST, RowView, ScheduleSession, SlotHighlight

CURRENT_MARKER = "CURRENT"


def slot_style(slot_class: str) -> str:
    if slot_class == SLOT_PAST:
        return "black on grey70"
    if slot_class == SLOT_NEXT:
        return "bold white on red1"
    if slot_class == SLOT_FUTURE:
        return "black on #ffcccc"
    return "white"


def render_slot_text(occupant: str, highlight: SlotHighlight) -> Text:
    style = slot_style(highlight.slot_class)
    if highlight.is_current_column:
        return Text(f"▸{occupant}", style=f"{style} underline")
    return Text(f" {occupant}", style=style)


def render_pointer_text(pointer: int, slot_count: int) -> Text:
    return Text(f"‹ {pointer}/{slot_count} ›", style="bold")


def next_exam_lines(session: ScheduleSession) -> list[str]:
    lines: list[str] = []
    for view in session.row_views():
        if view.state.next_ordinal is None:
            continue
        lines.append(f"{view.row.subject or '-'}: slot {view.state.next_ordinal}")
    return lines


def render_summary(console: Console, session: ScheduleSession, source: str) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Source", source)
    table.add_row("Subjects", str(len(session.rows)))
    table.add_row("Student", session.query or "-")
    next_lines = next_exam_lines(session)
    table.add_row("Next", "\n".join(next_lines) if next_lines else "-")
    console.print(Panel(table, title="Exam Schedule", border_style="blue"))


def render_subject_row(console: Console, view: RowView) -> None:
    grid = Table.grid(padding=(0, 1))
    grid.add_column(style="bold", no_wrap=True)
    grid.add_column(no_wrap=True)
    for _ in view.row.slots:
        grid.add_column(justify="center", no_wrap=True, min_width=5)

    markers: list[Text | str] = ["", ""]
    cells: list[Text | str] = [
        Text(f"{view.index + 1}. {view.row.subject}"),
        render_pointer_text(view.state.effective_pointer, view.row.slot_count),
    ]
    for occupant, highlight in zip(view.row.slots, view.highlights):
        markers.append(Text(CURRENT_MARKER, style="bold #2b6ef6") if highlight.is_current_column else "")
        cells.append(render_slot_text(occupant, highlight))
    grid.add_row(*markers)
    grid.add_row(*cells)
    console.print(grid)


def render_schedule(console: Console, session: ScheduleSession) -> None:
    views = session.row_views()
    if not views:
        console.print("[yellow]No subjects in the schedule.[/yellow]")
        return
    for view in views:
        render_subject_row(console, view)


def render_legend(console: Console) -> None:
    legend = Text()
    legend.append(" past ", style=slot_style(SLOT_PAST))
    legend.append("  ")
    legend.append(" next ", style=slot_style(SLOT_NEXT))
    legend.append("  ")
    legend.append(" future ", style=slot_style(SLOT_FUTURE))
    legend.append("  ")
    legend.append("▸current", style="underline")
    console.print(legend)


def render_command_help(console: Console) -> None:
    help_table = Table(title="Commands", header_style="bold magenta")
    help_table.add_column("command", style="cyan", no_wrap=True)
    help_table.add_column("description")
    help_table.add_row("help", "Show this help.")
    help_table.add_row("show", "Show the schedule again.")
    help_table.add_row("id <student_id>", "Highlight exams of one student.")
    help_table.add_row("clear", "Clear the student id.")
    help_table.add_row("next <row> | + <row>", "Move the pointer of a subject one slot forward.")
    help_table.add_row("prev <row> | - <row>", "Move the pointer of a subject one slot back.")
    help_table.add_row("refresh", "Reload the schedule (resets pointers).")
    help_table.add_row("quit", "Exit application.")
    console.print(help_table)
