"""Interactive CLI application."""
import logging
import time
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from neet_tutor.config import load_settings
from neet_tutor.convert import ANSWER_LETTERS, answer_index
from neet_tutor.dashboard import get_chapter_progress, get_dashboard, get_readiness_color
from neet_tutor.errors import StorageError
from neet_tutor.importer import import_questions
from neet_tutor.logging_config import init_logging
from neet_tutor.models import parse_timestamp
from neet_tutor.quiz import finish_quiz, record_quiz_answer, start_quiz
from neet_tutor.storage import Storage, create_storage
from neet_tutor.study import get_upcoming_events, record_study_session

logger = logging.getLogger(__name__)

console = Console()


def show_welcome():
    console.print(Panel(
        "[bold]NEET Preparation[/bold]\n[dim]Physics, Chemistry and Biology practice[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("dashboard", "Progress and accuracy"),
        ("chapters", "Browse or add chapters"),
        ("quiz", "Practice quiz for a chapter"),
        ("study", "Log a study session"),
        ("calendar", "Upcoming events"),
        ("chat", "Messages"),
        ("files", "Stored files and folders"),
        ("import", "Import questions from a file"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def run_quiz_session(storage: Storage, session, questions: list) -> dict:
    console.print(f"\n[bold]Quiz[/bold]: {len(questions)} questions (+4 correct, -1 wrong, s to skip)\n")
    choices = [letter.lower() for letter in ANSWER_LETTERS] + ["s"]
    for i, q in enumerate(questions, 1):
        console.print(f"[bold]Q{i}.[/bold] {q.question}\n")
        for letter, option in zip(ANSWER_LETTERS, q.options):
            if option:
                console.print(f"  [cyan]{letter.lower()})[/cyan] {option}")
        started = time.monotonic()
        answer = Prompt.ask("\nYour answer", choices=choices)
        elapsed = int(time.monotonic() - started)
        selected = None if answer == "s" else answer_index(answer)
        is_correct = record_quiz_answer(storage, session.id, q, selected, time_spent_seconds=elapsed)
        if selected is None:
            console.print(f"[yellow]Skipped.[/yellow] Answer: [green]{ANSWER_LETTERS[q.correct_answer]}[/green]")
        elif is_correct:
            console.print("[green]Correct![/green]")
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{ANSWER_LETTERS[q.correct_answer]}[/green]")
        if q.explanation:
            console.print(f"[dim]{q.explanation}[/dim]")
        console.print()
    summary = finish_quiz(storage, session.id)
    console.print(
        f"[bold]Score: {summary['score']}/{summary['max_score']}[/bold]  "
        f"({summary['correct']} correct, {summary['incorrect']} wrong, {summary['unanswered']} skipped)\n"
    )
    return summary


def show_chapters(storage: Storage):
    table = Table(title="Chapters")
    table.add_column("ID", justify="right")
    table.add_column("Subject")
    table.add_column("Chapter", style="cyan")
    table.add_column("Questions", justify="right")
    table.add_column("Done", justify="right")
    for row in get_chapter_progress(storage):
        table.add_row(
            str(row["chapter_id"]), row["subject"], row["title"],
            str(row["total_questions"]), f"{row['completion']}%",
        )
    console.print(table)


def cmd_dashboard(storage: Storage):
    data = get_dashboard(storage)
    color = get_readiness_color(data["accuracy"])
    console.print(Panel(
        f"Study streak: [bold]{data['study_streak']}[/bold] days  |  "
        f"Study time: [bold]{data['study_hours']}[/bold] h",
        title="NEET Dashboard", border_style="blue",
    ))
    console.print(
        f"\n  Questions solved: [bold]{data['questions_solved']}[/bold]  |  "
        f"Accuracy: [{color}]{data['accuracy']}% {data['readiness']}[/{color}]\n"
    )
    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Chapters", justify="right")
    table.add_column("Questions", justify="right")
    for s in data["subjects"]:
        table.add_row(f"[{s['color']}]{s['name']}[/{s['color']}]", str(s["chapters"]), str(s["total_questions"]))
    console.print(table)


def cmd_chapters(storage: Storage):
    show_chapters(storage)
    action = Prompt.ask("Action", choices=["back", "add"], default="back")
    if action == "add":
        for subject in storage.get_subjects():
            console.print(f"  [cyan]{subject.id}[/cyan]) {subject.name}")
        subject_id = IntPrompt.ask("Subject", choices=[str(s.id) for s in storage.get_subjects()])
        title = Prompt.ask("Chapter title")
        description = Prompt.ask("Description", default="")
        chapter = storage.create_chapter(title=title, subject_id=subject_id, description=description)
        console.print(f"[green]Created chapter {chapter.id}: {chapter.title}[/green]")


def cmd_quiz(storage: Storage):
    show_chapters(storage)
    chapter_id = IntPrompt.ask("Select chapter", choices=[str(c.id) for c in storage.get_chapters()])
    session, questions = start_quiz(storage, chapter_id)
    if session is None:
        console.print("[yellow]This chapter has no questions yet. Import some first.[/yellow]")
        return
    run_quiz_session(storage, session, questions)


def cmd_study(storage: Storage):
    show_chapters(storage)
    chapter_id = IntPrompt.ask("Chapter studied", choices=[str(c.id) for c in storage.get_chapters()])
    minutes = IntPrompt.ask("Minutes", default=30)
    record_study_session(storage, chapter_id, minutes)
    stats = storage.get_user_stats()
    console.print(f"[green]Logged {minutes} min. Streak: {stats.study_streak} days.[/green]")


def cmd_calendar(storage: Storage):
    events = get_upcoming_events(storage, days=30)
    if not events:
        console.print("[dim]No upcoming events.[/dim]")
    else:
        table = Table(title="Upcoming")
        table.add_column("When")
        table.add_column("Event", style="cyan")
        for e in events:
            table.add_row(e.start_time.strftime("%a %d %b %H:%M"), f"[{e.color}]{e.title}[/{e.color}]")
        console.print(table)
    action = Prompt.ask("Action", choices=["back", "add"], default="back")
    if action == "add":
        title = Prompt.ask("Title")
        when = Prompt.ask("Start (YYYY-MM-DD HH:MM)")
        start = parse_timestamp(datetime.strptime(when, "%Y-%m-%d %H:%M"))
        event = storage.create_schedule_event(title=title, start_time=start)
        console.print(f"[green]Added {event.title} on {event.start_time:%d %b %H:%M}[/green]")


def cmd_chat(storage: Storage):
    for m in storage.get_messages():
        console.print(f"[cyan]{m.get('sender', '?')}[/cyan]: {m.get('text', '')}")
    text = Prompt.ask("Message (blank to go back)", default="")
    if text:
        try:
            storage.create_message(text=text, sender="user")
        except StorageError as e:
            console.print(f"[red]Message not sent: {e}[/red]")


def cmd_files(storage: Storage):
    table = Table(title="Storage")
    table.add_column("Kind")
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    for folder in storage.get_folders():
        table.add_row("folder", folder.get("name", ""), folder.get("path", ""))
    for f in storage.get_files():
        table.add_row(f.get("type") or "file", f.get("name", ""), f.get("path", ""))
    console.print(table)


def cmd_import(storage: Storage):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    show_chapters(storage)
    chapter_id = IntPrompt.ask("Import into chapter")
    result = import_questions(storage, file_path, chapter_id)
    console.print(f"[green]Imported {result['imported']} questions from {result['filename']}[/green]")


COMMANDS = {
    "dashboard": cmd_dashboard,
    "chapters": cmd_chapters,
    "quiz": cmd_quiz,
    "study": cmd_study,
    "calendar": cmd_calendar,
    "chat": cmd_chat,
    "files": cmd_files,
    "import": cmd_import,
}


def main():
    settings = load_settings()
    init_logging(settings.log_level, settings.log_format)
    console.print("[dim]Loading your study data...[/dim]")
    storage = create_storage(settings)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
        try:
            if choice in ("quit", "exit", "q"):
                console.print("[dim]All the best for NEET![/dim]")
                break
            command = COMMANDS.get(choice)
            if command is None:
                console.print("[red]Unknown command. Try again.[/red]")
                continue
            command(storage)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
