import typer
from rich.console import Console
from rich.table import Table
from typing import Optional
from datetime import datetime

from trainer.config import settings
from trainer.database import SessionLocal, init_db
from trainer.log import configure_logging
from trainer.exceptions import NoActiveProfileError, NotFoundError, TrainerException
from trainer.crud import (
    create_profile, get_profile, list_profiles, update_profile_settings,
    delete_profile, set_active_profile, get_active_profile,
    list_lessons, get_lesson, extract_examples, import_lesson_file, import_lessons_dir, delete_lesson,
    load_analytics, add_error, remove_error, get_most_problematic_sentences,
    create_analytics_backup, import_analytics_file,
    record_completion, mark_completed_and_maybe_hide, toggle_visibility,
    refresh_statuses, get_all_repetition_info,
    get_priority_sentences, save_priority_sentences, sentences_due_for_review
)
from trainer.schemas import LessonStatus, ProfileCreate
from trainer.spaced_repetition import ReviewScheduler

app = typer.Typer(help="Lesson Trainer CLI - Russian lessons with spaced repetition review")
console = Console()


def _resolve_profile_id(db, profile_id: Optional[str]) -> str:
    """Use the given profile, or fall back to the active one"""
    if profile_id:
        if not get_profile(db, profile_id):
            raise NotFoundError(f"Profile {profile_id} not found")
        return profile_id
    active = get_active_profile(db)
    if not active:
        raise NoActiveProfileError("No profile given and no active profile. Run `use-profile` first.")
    return active.id


def _format_ms(timestamp: int) -> str:
    if not timestamp:
        return "-"
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d")


def _fail(error: Exception):
    console.print(f"[red]✗[/red] {error}")
    raise typer.Exit(code=1)


@app.command()
def init():
    """Initialize database tables"""
    init_db()
    console.print("[green]✓[/green] Database initialized successfully!")

@app.command()
def reset_db():
    """Delete all data and reinitialize database (WARNING: irreversible!)"""
    confirm = typer.confirm("⚠️  This will DELETE ALL DATA. Are you sure?")
    if not confirm:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    from trainer.database import engine, Base
    import trainer.models  # noqa: F401
    console.print("[yellow]Dropping all tables...[/yellow]")
    Base.metadata.drop_all(bind=engine)
    console.print("[yellow]Recreating tables...[/yellow]")
    Base.metadata.create_all(bind=engine)
    console.print("[green]✓[/green] Database reset complete! All data deleted.")

# ===================================================================
# PROFILES
# ===================================================================

@app.command("create-profile")
def create_profile_command(
    name: str = typer.Option(..., prompt="Learner name"),
    avatar: Optional[str] = typer.Option(None, help="Avatar (emoji or image URL)")
):
    """Create a new learner profile"""
    db = SessionLocal()
    try:
        profile = create_profile(db, ProfileCreate(name=name, avatar=avatar))
        console.print(f"[green]✓[/green] Profile created successfully! ID: {profile.id}")
        if profile.is_admin:
            console.print("  First profile: granted admin rights")
    finally:
        db.close()

@app.command("list-profiles")
def list_profiles_command():
    """List all profiles"""
    db = SessionLocal()
    try:
        profiles = list_profiles(db)
        if not profiles:
            console.print("[yellow]No profiles yet. Create one with `create-profile`.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Admin")
        table.add_column("Active")
        for profile in profiles:
            table.add_row(
                profile.id,
                profile.name,
                "yes" if profile.is_admin else "",
                "●" if profile.is_active else ""
            )
        console.print(table)
    finally:
        db.close()

@app.command("use-profile")
def use_profile(profile_id: str):
    """Make a profile the active one"""
    db = SessionLocal()
    try:
        profile = set_active_profile(db, profile_id)
        console.print(f"[green]✓[/green] Active profile: {profile.name}")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command("view-profile")
def view_profile(profile_id: Optional[str] = typer.Argument(None)):
    """View a profile and its settings"""
    db = SessionLocal()
    try:
        profile = get_profile(db, _resolve_profile_id(db, profile_id))

        console.print("\n[bold]Learner Profile[/bold]")
        console.print(f"  ID: {profile.id}")
        console.print(f"  Name: {profile.name}")
        console.print(f"  Admin: {'yes' if profile.is_admin else 'no'}")
        console.print(f"  Created: {profile.created_at.strftime('%Y-%m-%d %H:%M')}")
        for key, value in (profile.settings or {}).items():
            console.print(f"  {key}: {value}")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command("update-settings")
def update_settings(
    profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)"),
    exercise_mode: Optional[str] = typer.Option(None, help="en-to-ru-typing, ru-to-en-typing, en-to-ru-blocks, ru-to-en-blocks"),
    exercises_per_session: Optional[int] = typer.Option(None, help="Exercises per session"),
    timer: Optional[bool] = typer.Option(None, "--timer/--no-timer", help="Enable the answer timer"),
    timer_duration: Optional[int] = typer.Option(None, help="Timer duration (seconds)")
):
    """Update exercise settings of a profile"""
    db = SessionLocal()
    try:
        updates = {}
        if exercise_mode:
            updates["exercise_mode"] = exercise_mode
        if exercises_per_session:
            updates["exercises_per_session"] = exercises_per_session
        if timer is not None:
            updates["timer_enabled"] = timer
        if timer_duration:
            updates["timer_duration"] = timer_duration

        update_profile_settings(db, _resolve_profile_id(db, profile_id), updates)
        console.print("[green]✓[/green] Settings updated successfully!")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command("delete-profile")
def delete_profile_command(
    profile_id: str,
    admin_id: Optional[str] = typer.Option(None, help="Requesting admin profile (default: active profile)")
):
    """Delete a profile and its analytics (admin only)"""
    db = SessionLocal()
    try:
        delete_profile(db, profile_id, _resolve_profile_id(db, admin_id))
        console.print(f"[green]✓[/green] Profile {profile_id} deleted")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

# ===================================================================
# LESSONS
# ===================================================================

@app.command("import-lessons")
def import_lessons(
    path: Optional[str] = typer.Argument(None, help="Lesson JSON file or directory (default: configured lessons dir)")
):
    """Import lesson JSON files"""
    from pathlib import Path

    db = SessionLocal()
    try:
        target = Path(path or settings.lessons_dir)
        if target.is_file():
            lesson_id = import_lesson_file(db, str(target))
            console.print(f"[green]✓[/green] Imported lesson {lesson_id}")
            return

        results = import_lessons_dir(db, str(target))
        if not results:
            console.print(f"[yellow]No lesson files found in {target}[/yellow]")
            return
        for file_name, error in results.items():
            if error:
                console.print(f"[red]✗[/red] {file_name}: {error}")
            else:
                console.print(f"[green]✓[/green] {file_name}")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command("list-lessons")
def list_lessons_command():
    """List stored lessons"""
    db = SessionLocal()
    try:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Lesson", style="cyan")
        table.add_column("Concept", style="green")
        table.add_column("Level")
        table.add_column("Examples", justify="right")
        for lesson_id in list_lessons(db):
            lesson = get_lesson(db, lesson_id)
            table.add_row(
                lesson_id,
                lesson.concept[:50],
                lesson.level.value if lesson.level else "",
                str(len(extract_examples(lesson)))
            )
        console.print(table)
    finally:
        db.close()

@app.command("delete-lesson")
def delete_lesson_command(
    lesson_id: str,
    admin_id: Optional[str] = typer.Option(None, help="Requesting admin profile (default: active profile)")
):
    """Delete a lesson (admin only)"""
    db = SessionLocal()
    try:
        delete_lesson(db, lesson_id, _resolve_profile_id(db, admin_id))
        console.print(f"[green]✓[/green] Lesson {lesson_id} deleted")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

# ===================================================================
# EXERCISE RESULTS
# ===================================================================

@app.command("log-error")
def log_error(
    lesson_id: str,
    russian: str = typer.Option(..., prompt="Russian sentence"),
    english: str = typer.Option(..., prompt="English sentence"),
    profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")
):
    """Log a mistake on a sentence"""
    db = SessionLocal()
    try:
        add_error(db, lesson_id, russian, english, _resolve_profile_id(db, profile_id))
        console.print("[green]✓[/green] Error recorded")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command("clear-error")
def clear_error(
    lesson_id: str,
    russian: str = typer.Option(..., prompt="Russian sentence"),
    english: str = typer.Option(..., prompt="English sentence"),
    profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")
):
    """Remove logged mistakes for a sentence answered correctly"""
    db = SessionLocal()
    try:
        removed = remove_error(db, lesson_id, russian, english, _resolve_profile_id(db, profile_id))
        if removed:
            console.print(f"[green]✓[/green] Removed {removed} error(s)")
        else:
            console.print("[yellow]No matching errors found[/yellow]")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command("complete-lesson")
def complete_lesson(
    lesson_id: str,
    profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")
):
    """Mark a lesson as completed and schedule its first review"""
    db = SessionLocal()
    try:
        info = mark_completed_and_maybe_hide(db, lesson_id, _resolve_profile_id(db, profile_id))
        console.print(f"[green]✓[/green] Lesson {lesson_id} completed!")
        console.print(f"  Errors logged: {info.last_error_count}")
        console.print(f"  Next review: {_format_ms(info.next_review_date)}")
        if info.is_hidden:
            console.print("  Learned cleanly - hidden from the lesson list")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command("complete-review")
def complete_review(
    lesson_id: str,
    errors: int = typer.Option(0, min=0, help="Errors made during the review"),
    profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")
):
    """Record a finished review of a lesson"""
    db = SessionLocal()
    try:
        info = record_completion(db, lesson_id, errors, _resolve_profile_id(db, profile_id))
        console.print(f"[green]✓[/green] Review recorded!")
        console.print(f"  Repetition level: {info.repetition_level}")
        console.print(f"  Next review: {_format_ms(info.next_review_date)}")
        if ReviewScheduler.is_cycle_complete(info):
            console.print("  Review cycle complete - reviews continue at the longest interval")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command()
def hide(
    lesson_id: str,
    show: bool = typer.Option(False, "--show", help="Make the lesson visible again instead"),
    profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")
):
    """Hide a lesson from review (or show it again with --show)"""
    db = SessionLocal()
    try:
        info = toggle_visibility(db, lesson_id, not show, _resolve_profile_id(db, profile_id))
        if info is None:
            console.print(f"[red]✗[/red] Failed to change visibility of {lesson_id}")
            raise typer.Exit(code=1)
        console.print(f"[green]✓[/green] Lesson {lesson_id} is now {'hidden' if info.is_hidden else 'visible'}")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

# ===================================================================
# REVIEW
# ===================================================================

@app.command()
def due(profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")):
    """List lessons due for review"""
    db = SessionLocal()
    try:
        resolved = _resolve_profile_id(db, profile_id)
        refresh_statuses(db, resolved)
        lessons = [
            info for info in get_all_repetition_info(db, resolved)
            if not info.is_hidden and info.status == LessonStatus.DUE_FOR_REVIEW
        ]

        if not lessons:
            console.print("[green]Nothing due for review today.[/green]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Lesson", style="cyan")
        table.add_column("Level", justify="right")
        table.add_column("Due Date", style="yellow")
        table.add_column("Completions", justify="right")
        table.add_column("Last Errors", style="red", justify="right")
        for info in lessons:
            table.add_row(
                info.lesson_id,
                str(info.repetition_level),
                _format_ms(info.next_review_date),
                str(len(info.completion_dates)),
                str(info.last_error_count)
            )
        console.print(table)
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command()
def review(
    lesson_id: Optional[str] = typer.Argument(None, help="Review one lesson even if it is not due"),
    limit: int = typer.Option(20, help="Maximum sentences to show"),
    profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")
):
    """Show today's review sentences, most important first"""
    db = SessionLocal()
    try:
        sentences = sentences_due_for_review(db, _resolve_profile_id(db, profile_id), lesson_id)
        if not sentences:
            console.print("[green]No sentences to review.[/green]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Priority", justify="right")
        table.add_column("Lesson", style="cyan")
        table.add_column("Russian", style="green")
        table.add_column("English", style="yellow")
        table.add_column("Errors", style="red", justify="right")
        for sentence in sentences[:limit]:
            table.add_row(
                str(sentence.adjusted_priority),
                sentence.lesson_id,
                sentence.russian,
                sentence.english,
                str(sentence.error_count)
            )
        console.print(table)
        if len(sentences) > limit:
            console.print(f"[dim]... and {len(sentences) - limit} more sentences[/dim]")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command()
def priority(
    lesson_id: str,
    refresh: bool = typer.Option(False, "--refresh", help="Re-rank against the current error log"),
    profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")
):
    """Show the priority sentences selected for a lesson"""
    db = SessionLocal()
    try:
        resolved = _resolve_profile_id(db, profile_id)
        if refresh:
            sentences = save_priority_sentences(db, lesson_id, resolved)
        else:
            sentences = get_priority_sentences(db, lesson_id, resolved)

        if not sentences:
            console.print(f"[yellow]Lesson {lesson_id} has no examples (or does not exist)[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Priority", justify="right")
        table.add_column("Russian", style="green")
        table.add_column("English", style="yellow")
        table.add_column("Errors", style="red", justify="right")
        for sentence in sentences:
            table.add_row(str(sentence.priority), sentence.russian, sentence.english, str(sentence.error_count))
        console.print(table)
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command()
def progress(profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")):
    """View learning progress, review schedule and problem sentences"""
    db = SessionLocal()
    try:
        resolved = _resolve_profile_id(db, profile_id)
        refresh_statuses(db, resolved)
        analytics = load_analytics(db, resolved)
        schedule = get_all_repetition_info(db, resolved)
        problems = get_most_problematic_sentences(db, resolved, limit=5)

        console.print(f"\n[bold]Learning Progress[/bold]\n")
        console.print(f"[cyan]Statistics:[/cyan]")
        console.print(f"  Lessons completed: {len(analytics.completed_lessons)}")
        console.print(f"  Exercises completed: {analytics.total_exercises_completed}")
        console.print(f"  Errors logged: {len(analytics.errors)}")
        console.print(f"  Last practice: {_format_ms(analytics.last_practice_date)}")

        if schedule:
            console.print(f"\n[yellow]Review Schedule:[/yellow]")
            table = Table(show_header=True, header_style="bold magenta")
            table.add_column("Lesson", style="cyan")
            table.add_column("Status")
            table.add_column("Level", justify="right")
            table.add_column("Next Review", style="yellow")
            table.add_column("Hidden")
            for info in schedule:
                table.add_row(
                    info.lesson_id,
                    info.status.value,
                    str(info.repetition_level),
                    _format_ms(info.next_review_date),
                    "yes" if info.is_hidden else ""
                )
            console.print(table)

        if problems:
            console.print(f"\n[red]Most Difficult Sentences:[/red]")
            for problem in problems:
                console.print(
                    f"  {problem.errors}× [{problem.lesson_id}] "
                    f"{problem.sentence.russian} / {problem.sentence.english}"
                )
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

# ===================================================================
# BACKUP
# ===================================================================

@app.command()
def backup(profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")):
    """Write the profile's analytics to a JSON backup file"""
    db = SessionLocal()
    try:
        path = create_analytics_backup(db, _resolve_profile_id(db, profile_id), settings.backup_dir)
        console.print(f"[green]✓[/green] Backup written to {path}")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()

@app.command("import-analytics")
def import_analytics(
    file_path: str,
    profile_id: Optional[str] = typer.Option(None, help="Profile ID (default: active profile)")
):
    """Replace the profile's analytics with a JSON document (e.g. a backup)"""
    db = SessionLocal()
    try:
        analytics = import_analytics_file(db, _resolve_profile_id(db, profile_id), file_path)
        console.print(f"[green]✓[/green] Imported analytics")
        console.print(f"  Errors: {len(analytics.errors)}")
        console.print(f"  Lessons tracked for review: {len(analytics.spaced_repetition)}")
    except TrainerException as e:
        _fail(e)
    finally:
        db.close()


def main():
    """CLI entry point"""
    configure_logging(settings.log_level)
    app()

if __name__ == "__main__":
    main()
