"""Interactive CLI application."""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.syntax import Syntax
from rich.table import Table

from pyai_academy.access import ensure_lesson_access, ensure_test_access
from pyai_academy.assessment import format_time, start_test
from pyai_academy.constants import CATEGORIES, LEVELS
from pyai_academy.content import get_course, list_categories, list_courses
from pyai_academy.dashboard import get_course_rows, get_learner_stats, get_progress_color
from pyai_academy.db import DEFAULT_DB_PATH, init_db
from pyai_academy.errors import (
    AcademyError, ContentNotFound, InvalidSessionTransition, PremiumAccessRequired,
)
from pyai_academy.importer import import_file
from pyai_academy.progress import (
    count_failed_attempts, get_lesson_exercise_status, get_progress_percent,
    hint_for_attempt, record_exercise_submission,
)
from pyai_academy.records import (
    create_user, get_setting, get_user, set_setting, update_user_profile,
    update_user_subscription,
)
from pyai_academy.seed import DEMO_USER_ID, is_seeded, seed_all

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")
END_OF_CODE = "."


class SessionExitRequested(Exception):
    """Raised when the user leaves a lesson or test to return to the menu."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str], **kwargs) -> int:
    return int(session_prompt(prompt, choices=choices, **kwargs))


def show_welcome(user) -> None:
    plan = "[magenta]Premium[/magenta]" if user.is_premium else "Free"
    console.print(Panel(
        f"[bold]PyAI Academy[/bold]\n[dim]Signed in as {user.display_name} ({plan})[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu() -> None:
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("courses", "Browse the catalog"),
        ("learn", "Open a course and its lessons"),
        ("test", "Take a course's final test"),
        ("profile", "Progress + test results"),
        ("upgrade", "Switch to the premium plan"),
        ("import", "Add a course from JSON/YAML"),
        ("user", "Switch learner"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def pick_course(db_path: str) -> str:
    courses = list_courses(db_path)
    for i, c in enumerate(courses, 1):
        badge = " [magenta]PREMIUM[/magenta]" if c.is_premium else ""
        console.print(f"  [cyan]{i}[/cyan]) {c.title}{badge}")
    choice = session_int_prompt("Course", choices=[str(i) for i in range(1, len(courses) + 1)])
    return courses[choice - 1].id


def read_code() -> str:
    console.print(f"[dim]Type your code. A line with only '{END_OF_CODE}' submits it.[/dim]")
    lines = []
    while True:
        line = session_prompt("", default="", show_default=False)
        if line.strip() == END_OF_CODE:
            break
        lines.append(line)
    return "\n".join(lines)


def run_exercise(db_path: str, user_id: str, course_id: str, lesson_id: str, exercise) -> bool:
    console.print(Panel(exercise.instructions or exercise.title, title=exercise.title, border_style="cyan"))
    if exercise.starter_code.strip():
        console.print(Syntax(exercise.starter_code, "python", line_numbers=False))
    while True:
        code = read_code()
        is_correct = record_exercise_submission(db_path, user_id, course_id, lesson_id, exercise.id, code)
        if is_correct:
            console.print("[green]Great job! Your solution is correct.[/green]")
            return True
        console.print("[red]Your solution is not quite right.[/red]")
        failed = count_failed_attempts(db_path, user_id, course_id, lesson_id, exercise.id)
        hint = hint_for_attempt(exercise, failed)
        if hint:
            console.print(f"[yellow]Hint:[/yellow] {hint}")
        if not Confirm.ask("Try again?", default=True):
            return False


def run_lesson(db_path: str, user_id: str, course, lesson_index: int) -> None:
    lesson = course.lessons[lesson_index]
    ensure_lesson_access(db_path, user_id, course, lesson_index)
    console.print(f"\n[bold]Lesson {lesson_index + 1}: {lesson.title}[/bold] [dim]{lesson.duration}[/dim]\n")
    for section in lesson.sections:
        console.print(f"[bold cyan]{section.title}[/bold cyan]")
        if section.kind == "video" and section.video_url:
            console.print(f"[dim]Video: {section.video_url}[/dim]")
        if section.body:
            console.print(section.body)
        if section.code:
            console.print(Syntax(section.code, "python"))
        console.print()
    status = get_lesson_exercise_status(db_path, user_id, course.id, lesson.id)
    for exercise in lesson.exercises:
        if status.get(exercise.id):
            console.print(f"[green]✓[/green] {exercise.title}")
            continue
        run_exercise(db_path, user_id, course.id, lesson.id, exercise)
    percent = get_progress_percent(db_path, user_id, course.id)
    console.print(f"\n[bold]Course progress: {percent}%[/bold]")


def show_course_table(rows: list[dict]) -> None:
    table = Table(title="Courses")
    table.add_column("Course", style="cyan")
    table.add_column("Category")
    table.add_column("Level")
    table.add_column("Plan")
    table.add_column("Progress", justify="right")
    table.add_column("Status")
    for row in rows:
        color = get_progress_color(row["progress"])
        table.add_row(
            row["title"],
            row["category"],
            row["level"],
            "[magenta]Premium[/magenta]" if row["is_premium"] else "Free",
            f"[{color}]{row['progress']}%[/{color}]",
            row["label"],
        )
    console.print(table)


def cmd_courses(db_path: str, user_id: str) -> None:
    categories = list_categories(db_path)
    for slug in categories:
        console.print(f"  [cyan]{slug:<14}[/cyan] {CATEGORIES.get(slug, slug)}")
    category = Prompt.ask("Category", choices=["all"] + categories, default="all")
    level = Prompt.ask("Level", choices=["all"] + list(LEVELS), default="all")
    rows = get_course_rows(
        db_path, user_id,
        category=None if category == "all" else category,
        level=None if level == "all" else level,
        sort_by="category" if category == "all" else "title",
    )
    if not rows:
        console.print("[dim]No courses match.[/dim]")
        return
    show_course_table(rows)


def cmd_learn(db_path: str, user_id: str) -> None:
    course = get_course(db_path, pick_course(db_path))
    console.print(Panel(course.description or course.title, title=course.title))
    for i, lesson in enumerate(course.lessons, 1):
        console.print(f"  [cyan]{i}[/cyan]) {lesson.title} [dim]{lesson.duration}[/dim]")
    choice = session_int_prompt("Lesson", choices=[str(i) for i in range(1, len(course.lessons) + 1)])
    run_lesson(db_path, user_id, course, choice - 1)


def run_test(db_path: str, user_id: str, course_id: str, interval: float = 1.0) -> None:
    session = start_test(db_path, user_id, course_id, start_timer=True, interval=interval)
    questions = session.test.questions
    console.print(f"\n[bold]{session.test.title or 'Final Test'}[/bold] ({len(questions)} questions, "
                  f"{session.test.time_limit_minutes} min)\n")
    try:
        while not session.is_completed:
            i = session.current_question
            q = questions[i]
            console.print(f"[dim]Time left {format_time(session.remaining_seconds)}[/dim]")
            console.print(f"[bold]Q{i + 1}.[/bold] {q.prompt}")
            if q.code:
                console.print(Syntax(q.code, "python"))
            for a in q.answers:
                marker = "[green]●[/green]" if session.answers.get(i) == a.id else " "
                console.print(f" {marker} [cyan]{a.id})[/cyan] {a.text}")
            choice = session_prompt(
                "Answer, (n)ext, (p)rev or (s)ubmit",
                choices=[a.id for a in q.answers] + ["n", "p", "s"],
            )
            if choice == "n":
                session.next_question()
            elif choice == "p":
                session.previous_question()
            elif choice == "s":
                missing = session.unanswered_count()
                if missing and not session.is_completed and not Confirm.ask(
                        f"You have {missing} unanswered question(s). Submit anyway?"):
                    continue
                session.submit()
            else:
                try:
                    session.answer_question(i, choice)
                except InvalidSessionTransition:
                    # the countdown finished the test while the prompt was open
                    break
                session.next_question()
    finally:
        if not session.is_completed:
            session.cancel()
    if session.remaining_seconds == 0:
        console.print("[yellow]Time is up, your test was submitted.[/yellow]")
    result = session.result
    color = "green" if result.passed else "red"
    console.print(Panel(
        f"Score: [bold {color}]{result.score}%[/bold {color}] "
        f"({result.correct_answers}/{result.total_questions})\n"
        f"Time: {format_time(result.time_spent_seconds)}\n"
        + ("[green]Passed. Course completed![/green]" if result.passed else "[red]Not passed. Try again later.[/red]"),
        title="Test Results", border_style=color,
    ))


def cmd_test(db_path: str, user_id: str) -> None:
    course = get_course(db_path, pick_course(db_path))
    ensure_test_access(db_path, user_id, course)
    run_test(db_path, user_id, course.id)


def cmd_profile(db_path: str, user_id: str) -> None:
    user = get_user(db_path, user_id)
    stats = get_learner_stats(db_path, user_id)
    console.print(Panel(f"[bold]{user.display_name}[/bold] {user.email}", title="Profile", border_style="blue"))
    console.print(f"\n  Completed: [bold]{stats['completed_courses']}[/bold]  |  "
                  f"In progress: [bold]{stats['in_progress_courses']}[/bold]  |  "
                  f"Exercises solved: [bold]{stats['exercises_solved']}[/bold]  |  "
                  f"Tests passed: [bold]{stats['tests_passed']}/{stats['tests_taken']}[/bold]  |  "
                  f"Avg test: [bold]{stats['avg_test_score']}%[/bold]\n")
    show_course_table(get_course_rows(db_path, user_id))


def cmd_upgrade(db_path: str, user_id: str) -> None:
    user = get_user(db_path, user_id)
    if user.is_premium:
        console.print("[green]You already have the premium plan.[/green]")
        return
    for course in list_courses(db_path, is_premium=True):
        console.print(f"  [magenta]•[/magenta] {course.title}")
    if Confirm.ask("Upgrade to premium and unlock these courses?"):
        update_user_subscription(db_path, user_id, "premium")
        console.print("[green]Premium unlocked![/green]")


def cmd_import(db_path: str) -> None:
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    for summary in import_file(db_path, file_path):
        console.print(f"[green]Imported {summary['course_id']}: {summary['lessons']} lessons, "
                      f"{summary['exercises']} exercises, {summary['questions']} test questions[/green]")


def cmd_user(db_path: str) -> str:
    user_id = Prompt.ask("Learner id", default=DEMO_USER_ID).strip()
    try:
        current_name = get_user(db_path, user_id).display_name
    except ContentNotFound:
        current_name = user_id
    name = Prompt.ask("Display name", default=current_name)
    user = create_user(db_path, user_id, name)
    if user.display_name != name:
        user = update_user_profile(db_path, user_id, display_name=name)
    set_setting(db_path, "current_user", user.id)
    show_welcome(user)
    return user.id


def main():
    logging.basicConfig(
        level=logging.WARNING, format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    user_id = get_setting(db_path, "current_user", DEMO_USER_ID)
    show_welcome(get_user(db_path, user_id))

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="courses").strip().lower()
        try:
            if choice == "courses":
                cmd_courses(db_path, user_id)
            elif choice == "learn":
                cmd_learn(db_path, user_id)
            elif choice == "test":
                cmd_test(db_path, user_id)
            elif choice == "profile":
                cmd_profile(db_path, user_id)
            elif choice == "upgrade":
                cmd_upgrade(db_path, user_id)
            elif choice == "import":
                cmd_import(db_path)
            elif choice == "user":
                user_id = cmd_user(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Happy coding![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Back to the menu.[/dim]")
        except PremiumAccessRequired as e:
            console.print(f"[magenta]{e}.[/magenta] Use 'upgrade' to unlock it.")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except AcademyError as e:
            logger.error("%s", e)
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
