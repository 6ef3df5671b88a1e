"""
Typer CLI for the ninja practice engine.

Commands:
    ninja plan LEARNER            - Show (or build) today's mission batch
    ninja plan LEARNER --regenerate --module m1 --template MCQ_CONCEPT
    ninja start LEARNER MISSION   - Open a mission and list its questions
    ninja session LEARNER SUBJECT - Start or resume today's subject session
    ninja answer LEARNER MISSION QUESTION ANSWER - Submit an answer
    ninja streak LEARNER          - Show streak and badges
    ninja stats LEARNER           - Mission statistics (last 30 days)
    ninja tables LEARNER          - Multiplication-table mastery
    ninja info                    - Show configuration and curriculum summary
"""

from __future__ import annotations

import asyncio
import sys
from typing import Annotated, Optional

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from practice_engine.adaptive.models import BatchOverrides, MissionStatus
from practice_engine.core.errors import PracticeEngineError, StoreUnavailable
from practice_engine.core.mastery import MasteryLevel
from practice_engine.engine import PracticeEngine
from practice_engine.progress.badges import BADGE_CATALOG

app = typer.Typer(
    help="ninja: adaptive daily practice missions",
    no_args_is_help=True,
)

console = Console()

STATUS_STYLES = {
    MissionStatus.AVAILABLE: "white",
    MissionStatus.IN_PROGRESS: "cyan",
    MissionStatus.COMPLETED: "green",
    MissionStatus.FAILED: "yellow",
    MissionStatus.EXPIRED: "dim",
}


def _engine() -> PracticeEngine:
    try:
        return PracticeEngine.from_settings(get_settings())
    except StoreUnavailable as e:
        rprint(f"[red]✗[/red] Learner store unavailable: {e}")
        raise typer.Exit(code=1)


def _run(coro):
    try:
        return asyncio.run(coro)
    except StoreUnavailable as e:
        rprint(f"[red]✗[/red] Learner store unavailable: {e}")
        raise typer.Exit(code=1)
    except PracticeEngineError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)


# ========================================
# MISSIONS
# ========================================


@app.command("plan")
def plan(
    learner_id: Annotated[str, typer.Argument(help="Learner id")],
    regenerate: Annotated[bool, typer.Option("--regenerate", help="Discard today's batch and rebuild")] = False,
    module: Annotated[Optional[list[str]], typer.Option("--module", "-m", help="Restrict to module id")] = None,
    template: Annotated[
        Optional[list[str]], typer.Option("--template", "-t", help="Force template id for every slot")
    ] = None,
) -> None:
    """
    Show today's mission batch, building it on first call.

    Examples:
        ninja plan ada
        ninja plan ada --regenerate --module fractions
    """
    engine = _engine()
    overrides = BatchOverrides(regenerate=regenerate, modules=module, templates=template)

    async def _plan():
        try:
            return await engine.generate_daily_batch(learner_id, overrides=overrides)
        finally:
            await engine.close()

    batch = _run(_plan())

    if batch.is_empty:
        rprint(f"[yellow]⚠[/yellow] Nothing to practice for {learner_id} on {batch.batch_date}")
        return

    rprint(f"\n[bold cyan]Daily missions for {learner_id}[/bold cyan] ({batch.batch_date})")
    table = Table(show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Mission", style="cyan")
    table.add_column("Difficulty")
    table.add_column("Questions", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Points", justify="right", style="green")
    table.add_column("Status")
    table.add_column("Mission id", style="dim")

    for mission in batch.missions:
        style = STATUS_STYLES[mission.status]
        table.add_row(
            str(mission.order),
            mission.title,
            mission.difficulty.value.title(),
            str(mission.total_questions),
            f"{mission.answered_count}/{mission.total_questions}",
            f"{mission.points_earned}/{mission.points}",
            f"[{style}]{mission.status.value}[/{style}]",
            mission.mission_id,
        )
    console.print(table)
    rprint(
        f"  Completed: {batch.completed_count}/{len(batch.missions)}  "
        f"Points: {batch.earned_points}/{batch.total_points}  "
        f"Template diversity: {batch.diversity_score:.0%}"
    )


@app.command("start")
def start(
    learner_id: Annotated[str, typer.Argument(help="Learner id")],
    mission_id: Annotated[str, typer.Argument(help="Mission id")],
) -> None:
    """Open a mission (starting its clock) and list its questions."""
    engine = _engine()

    async def _start():
        try:
            return await engine.start_mission(learner_id, mission_id)
        finally:
            await engine.close()

    mission = _run(_start())

    style = STATUS_STYLES[mission.status]
    rprint(f"\n[bold cyan]{mission.title}[/bold cyan] [{style}]{mission.status.value}[/{style}]")
    for question in mission.questions:
        done = "[green]✓[/green]" if question.question_id in mission.completed_question_ids else " "
        payload = question.content.payload
        rprint(f" {done} [dim]{question.question_id}[/dim] {payload.prompt}")
        for option in getattr(payload, "options", []):
            rprint(f"      {option.id}. {option.text}")


@app.command("answer")
def answer(
    learner_id: Annotated[str, typer.Argument(help="Learner id")],
    mission_id: Annotated[str, typer.Argument(help="Mission id")],
    question_id: Annotated[str, typer.Argument(help="Question id")],
    value: Annotated[str, typer.Argument(help="Answer (option id, number or text)")],
) -> None:
    """Submit an answer to a mission question."""
    engine = _engine()

    async def _answer():
        try:
            return await engine.submit_answer(learner_id, mission_id, question_id, value)
        finally:
            await engine.close()

    result = _run(_answer())

    mark = "[green]✓ Correct[/green]" if result.is_correct else "[red]✗ Incorrect[/red]"
    rprint(mark)
    if not result.recorded:
        rprint(f"  [dim]Not recorded: mission is {result.mission.status.value}[/dim]")
    if result.mastery_after is not None:
        level = MasteryLevel.from_score(result.mastery_after)
        rprint(f"  Mastery: [{level.color}]{result.mastery_after:.0%} ({level.display_name})[/{level.color}]")
    mission = result.mission
    rprint(f"  {mission.title}: {mission.answered_count}/{mission.total_questions} answered, {mission.score}%")
    for badge in result.new_badges:
        rprint(f"  [bold magenta]{badge.icon} Badge earned: {badge.title}[/bold magenta]")


# ========================================
# SESSIONS
# ========================================


@app.command("session")
def session(
    learner_id: Annotated[str, typer.Argument(help="Learner id")],
    subject: Annotated[str, typer.Argument(help="Subject id")],
    clear: Annotated[bool, typer.Option("--clear", help="Drop today's session for this subject")] = False,
) -> None:
    """Start or resume today's session for a subject."""
    engine = _engine()

    async def _session():
        try:
            return await engine.start_or_resume_session(learner_id, subject)
        finally:
            await engine.close()

    current = _run(_session())

    if clear:
        engine.clear_session(current)
        rprint(f"[green]✓[/green] Cleared {subject} session")
        return

    if current.is_placeholder:
        rprint(f"[yellow]⚠[/yellow] No {subject} content available right now")
    rprint(
        f"\n[bold cyan]{subject.title()} session[/bold cyan] ({current.session_date}): "
        f"question {min(current.current_index + 1, len(current.questions))}/{len(current.questions)}, "
        f"score {current.score}"
    )
    question = current.current_question
    if question is not None:
        payload = question.content.payload
        rprint(f"  [dim]{question.template_id}[/dim] {payload.prompt}")
        for option in getattr(payload, "options", []):
            rprint(f"    {option.id}. {option.text}")


# ========================================
# PROGRESS
# ========================================


@app.command("streak")
def streak(learner_id: Annotated[str, typer.Argument(help="Learner id")]) -> None:
    """Show streak and badges."""
    engine = _engine()
    current = engine.get_streak(learner_id)

    rprint(f"\n[bold cyan]Streak for {learner_id}[/bold cyan]")
    rprint(f"  🔥 Current: {current.current_streak} days  (longest {current.longest_streak})")
    rprint(f"  Missions completed: {current.total_missions_completed}")
    rprint(f"  Points earned: {current.total_points_earned}")

    if not current.badges:
        rprint("  [dim]No badges yet[/dim]")
        return

    table = Table(title="Badges", show_header=True)
    table.add_column("", justify="center")
    table.add_column("Badge", style="cyan")
    table.add_column("Earned", style="dim")
    for badge in current.badges:
        info = BADGE_CATALOG[badge.type]
        table.add_row(info.icon, f"{info.title}: {info.description}", badge.earned_at.strftime("%Y-%m-%d"))
    console.print(table)


@app.command("stats")
def stats(
    learner_id: Annotated[str, typer.Argument(help="Learner id")],
    days: Annotated[int, typer.Option("--days", "-d", help="Window in practice days")] = 30,
) -> None:
    """Mission statistics over recent days."""
    engine = _engine()
    engine.expire_missions(learner_id)
    result = engine.get_mission_stats(learner_id, days=days)

    table = Table(title=f"Missions, last {days} days", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Missions", str(result.total_missions))
    table.add_row("Completed", f"[green]{result.completed}[/green]")
    table.add_row("In progress", str(result.in_progress))
    table.add_row("Failed", f"[yellow]{result.failed}[/yellow]")
    table.add_row("Expired", f"[dim]{result.expired}[/dim]")
    table.add_row("Completion rate", f"{result.completion_rate}%")
    table.add_row("Points", f"{result.points_earned}/{result.points_available}")
    if result.average_completion_seconds is not None:
        minutes, seconds = divmod(result.average_completion_seconds, 60)
        table.add_row("Avg. completion", f"{minutes}m {seconds}s")
    if result.favorite_phase:
        table.add_row("Most practised", result.favorite_phase)
    table.add_row("Streak", f"{result.current_streak} (longest {result.longest_streak})")
    console.print(table)


@app.command("tables")
def tables(learner_id: Annotated[str, typer.Argument(help="Learner id")]) -> None:
    """Weighted multiplication-table mastery."""
    engine = _engine()
    result = engine.get_table_mastery(learner_id)
    level = MasteryLevel.from_score(result["weighted_percentage"] / 100)
    rprint(f"\n[bold cyan]Times tables for {learner_id}[/bold cyan]")
    rprint(f"  Weighted mastery: [{level.color}]{result['weighted_percentage']}%[/{level.color}]")
    rprint(f"  Facts mastered: {result['mastered_count']}/{result['total_facts']} ({result['percentage']}%)")


@app.command("info")
def info() -> None:
    """Show configuration and curriculum summary."""
    settings = get_settings()
    engine = _engine()
    curriculum = engine.curriculum

    table = Table(title="ninja practice engine", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Curriculum", f"{curriculum.curriculum_id} v{curriculum.schema_version}")
    table.add_row("Modules / atoms", f"{len(curriculum.modules)} / {len(curriculum.atoms)}")
    table.add_row("Content source", settings.content_api_url or str(settings.content_file or "packaged sample"))
    table.add_row("Learner store", settings.database_url)
    try:
        table.add_row("Learners", str(len(engine.store.learner_ids())))
    except StoreUnavailable as e:
        table.add_row("Learners", f"[red]unavailable[/red] ({e})")
    table.add_row("Cache", str(settings.cache_dir))
    table.add_row("Day starts at", f"{settings.day_cutover_hour:02d}:00 {settings.timezone}")
    console.print(table)


def run() -> None:
    """Entry point for the CLI."""
    logger.remove()
    logger.add(sys.stderr, level=get_settings().log_level)
    app()


if __name__ == "__main__":
    run()
