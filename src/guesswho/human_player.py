"""Terminal interface for playing Guess Who against the AI."""

import asyncio
import random
from typing import Iterable, List, Optional, Sequence

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.catalog import Character
from .core.errors import NotFoundError
from .core.fsm import GameEngine, HumanGuessOutcome, ResponseOutcome
from .core.schemas import GameStatus, Turn
from .utils.rng import build_rng, pick_pair

console = Console()

RESULT_LINES = {
    GameStatus.HUMAN_WON: "[green]YOU WIN[/green]",
    GameStatus.HUMAN_LOST: "[red]YOU LOSE[/red]",
    GameStatus.AI_WON: "[red]THE AI WINS[/red]",
    GameStatus.DRAW: "[yellow]DRAW[/yellow]",
}


def character_table(characters: Iterable[Character], *, eliminated: Iterable[str] = (), title: Optional[str] = None) -> Table:
    """Roster as a rich table; eliminated characters are dimmed."""
    struck = set(eliminated)
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Name", width=10)
    table.add_column("Gender")
    table.add_column("Hair")
    table.add_column("Eyes")
    table.add_column("Age")
    table.add_column("Extras")
    for character in characters:
        attrs = character.attributes
        extras = [
            label
            for label, present in (
                ("glasses", attrs.has_glasses),
                ("facial hair", attrs.has_facial_hair),
                ("hat", attrs.has_hat),
                ("earrings", attrs.has_earrings),
            )
            if present
        ]
        style = "dim strike" if character.id in struck else None
        table.add_row(
            character.id,
            character.name,
            attrs.gender.value,
            f"{attrs.hair_color.value}, {attrs.hair_length.value}",
            attrs.eye_color.value,
            attrs.age.value,
            ", ".join(extras) or "-",
            style=style,
        )
    return table


class GameNarrator:
    """Provides human-friendly game progress updates."""

    def __init__(self) -> None:
        self.console = console

    def divider(self, title: str = "") -> None:
        if title:
            self.console.print(f"\n{'=' * 60}")
            self.console.print(f"{title.center(60)}")
            self.console.print("=" * 60)
        else:
            self.console.print("-" * 60)

    def introduce(self, character: Character) -> None:
        self.divider("GUESS WHO")
        self.console.print(
            Panel(
                f"[bold]{character.name}[/bold] ({character.id})\n{character.attributes.to_dict()}",
                title="Your secret character",
                style="cyan",
            )
        )
        self.console.print("[dim]The AI asks first. Answer honestly![/dim]\n")

    def ai_question(self, question: str) -> None:
        self.console.print(f"[bold magenta]AI asks:[/bold magenta] {question}")

    def ai_response(self, outcome: ResponseOutcome, catalog_names: dict) -> None:
        if outcome.eliminated:
            names = ", ".join(catalog_names.get(cid, cid) for cid in outcome.eliminated)
            self.console.print(f"[dim]AI eliminated: {names}[/dim]")
        if not outcome.ai_guessed:
            self.console.print(f"[dim]AI reasoning: {outcome.reasoning}[/dim]\n")
            return
        verdict = "[green]CORRECT[/green]" if outcome.correct else "[red]INCORRECT[/red]"
        self.console.print(f"[bold red]AI guesses:[/bold red] {outcome.guessed_character} ... {verdict}")
        if outcome.message:
            self.console.print(f"[yellow]{outcome.message}[/yellow]")
        self.console.print()

    def answer(self, question: str, answer: str, reasoning: str) -> None:
        colour = "green" if answer == "yes" else "red"
        self.console.print(f"[bold]You asked:[/bold] {question}")
        self.console.print(f"AI answers: [{colour}]{answer.upper()}[/{colour}] [dim]({reasoning})[/dim]\n")

    def eliminated(self, names: Sequence[str], remaining: int) -> None:
        self.console.print(f"Struck out: {', '.join(names)} [dim]({remaining} left on the board)[/dim]\n")

    def human_guess(self, name: str, outcome: HumanGuessOutcome) -> None:
        verdict = "[green]CORRECT[/green]" if outcome.correct else "[red]INCORRECT[/red]"
        self.console.print(f"You guessed {name} ... {verdict}")
        if outcome.message:
            self.console.print(f"[yellow]{outcome.message}[/yellow]")
        elif outcome.continue_game:
            self.console.print("[dim]Not fatal yet. The AI takes its turn.[/dim]")
        self.console.print()

    def game_end(self, status: GameStatus, ai_character: Optional[Character]) -> None:
        self.divider("GAME OVER")
        self.console.print(f"Result: {RESULT_LINES.get(status, status.value)}")
        if ai_character is not None:
            self.console.print(f"The AI's character was [bold]{ai_character.name}[/bold] ({ai_character.id}).")
        self.console.print()


class HumanPlayerService:
    """Prompts for the human's moves."""

    def __init__(self, narrator: GameNarrator) -> None:
        self.narrator = narrator

    def yes_no(self, question: str) -> str:
        while True:
            value = typer.prompt(f"{question} (y/n)").lower().strip()
            if value in ("y", "yes"):
                return "yes"
            if value in ("n", "no"):
                return "no"
            console.print("[red]Please enter 'y' for yes or 'n' for no.[/red]")

    def action(self) -> str:
        while True:
            value = typer.prompt("Your turn: [a]sk, [g]uess, [e]liminate, [b]oard", default="a").lower().strip()
            if value[:1] in ("a", "g", "e", "b"):
                return value[:1]
            console.print("[red]Choose 'a', 'g', 'e' or 'b'.[/red]")

    def question(self) -> str:
        while True:
            value = typer.prompt("Ask a yes/no question").strip()
            if value:
                return value

    def guess(self, characters: Sequence[Character]) -> Character:
        by_id = {character.id: character for character in characters}
        by_name = {character.name.lower(): character for character in characters}
        while True:
            value = typer.prompt("Who is the AI's character? (name or id)").strip()
            found = by_id.get(value) or by_name.get(value.lower())
            if found is not None:
                return found
            console.print("[red]No such character.[/red]")

    def eliminate(self, characters: Sequence[Character]) -> List[Character]:
        """Characters to strike from the board, entered as comma-separated names or ids."""
        by_id = {character.id: character for character in characters}
        by_name = {character.name.lower(): character for character in characters}
        while True:
            value = typer.prompt("Eliminate which characters? (names or ids, comma-separated)")
            picked: List[Character] = []
            unknown: List[str] = []
            for item in (part.strip() for part in value.split(",")):
                if not item:
                    continue
                found = by_id.get(item) or by_name.get(item.lower())
                if found is None:
                    unknown.append(item)
                elif found not in picked:
                    picked.append(found)
            if picked and not unknown:
                return picked
            if unknown:
                console.print(f"[red]No such character: {', '.join(unknown)}[/red]")


async def run_terminal_game(
    engine: GameEngine,
    *,
    rng: Optional[random.Random] = None,
    narrator: Optional[GameNarrator] = None,
    service: Optional[HumanPlayerService] = None,
) -> GameStatus:
    """Play one full game in the terminal and return its final status."""

    rng = rng or build_rng()
    narrator = narrator or GameNarrator()
    service = service or HumanPlayerService(narrator)
    characters = engine.list_characters()
    names = {character.id: character.name for character in characters}

    human_character, ai_character = pick_pair(rng, characters)
    session = await engine.create_session(
        human_character_id=human_character.id,
        ai_character_id=ai_character.id,
    )
    narrator.introduce(human_character)

    while session.status is GameStatus.ACTIVE:
        if session.current_turn is Turn.AI:
            generated = await engine.request_ai_question(session.id)
            narrator.ai_question(generated.question)
            answer = await asyncio.to_thread(service.yes_no, "Your answer")
            narrator.ai_response(await engine.respond(session.id, answer), names)
        else:
            choice = await asyncio.to_thread(service.action)
            if choice == "b":
                console.print(
                    character_table(
                        characters,
                        eliminated=session.eliminated_characters,
                        title="Characters (struck out: eliminated)",
                    )
                )
                continue
            if choice == "e":
                picked = await asyncio.to_thread(service.eliminate, characters)
                eliminated = await engine.eliminate(session.id, [character.id for character in picked])
                narrator.eliminated([character.name for character in picked], len(characters) - len(eliminated))
                session = await engine.get_session(session.id)
                continue
            if choice == "a":
                question = await asyncio.to_thread(service.question)
                outcome = await engine.ask_question(session.id, question)
                narrator.answer(question, outcome.answer, outcome.reasoning)
            else:
                guessed = await asyncio.to_thread(service.guess, characters)
                try:
                    narrator.human_guess(guessed.name, await engine.human_guess(session.id, guessed.id))
                except NotFoundError as exc:
                    console.print(f"[red]{exc}[/red]")
        session = await engine.get_session(session.id)

    narrator.game_end(session.status, engine.catalog.find(session.ai_character_id))
    return session.status
