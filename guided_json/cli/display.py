"""
Rich output helpers for the CLI.

All output goes through the module-level ``console``; commands never call
``print`` directly.
"""

import json
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from guided_json.validation import ValidationError


console = Console()

Cell = Union[str, Text]


def print_header(title: str) -> None:
    console.print()
    console.rule(f"[bold cyan]{title}[/bold cyan]")


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def _key_value_table(title: Optional[str], rows: Iterable[Tuple[str, Cell]]) -> None:
    table = Table(title=title, show_header=False, title_style="bold cyan")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    for key, value in rows:
        table.add_row(key, value if isinstance(value, Text) else str(value))
    console.print(table)


def print_json(data: Any, title: Optional[str] = None) -> None:
    """
    Syntax-highlight JSON, optionally inside a titled panel.

    Args:
        data: JSON text, or any JSON-serializable value
        title: Panel title
    """
    text = data if isinstance(data, str) else json.dumps(data, indent=2)
    syntax = Syntax(text, "json", theme="monokai", word_wrap=True)
    console.print(Panel(syntax, title=f"[bold]{title}[/bold]", border_style="cyan") if title else syntax)


def print_schema(schema: Dict[str, Any]) -> None:
    print_json(schema, title="Schema")


def print_settings(settings: Dict[str, Any]) -> None:
    """Show the options a command is about to run with."""
    _key_value_table(None, settings.items())


def print_validation_errors(errors: List[ValidationError]) -> None:
    for error in errors:
        console.print(f"  [red]•[/red] At {error.path}: {error.message}")


def print_result_stats(is_valid: bool, tokens_used: int, token_budget: int, latency_ms: float) -> None:
    """Table of validity, token usage against the budget, latency and throughput."""
    rows: List[Tuple[str, Cell]] = [
        ("Status", Text("valid", style="green bold") if is_valid else Text("invalid", style="red bold")),
        ("Tokens", f"{tokens_used} / {token_budget}"),
        ("Latency", f"{latency_ms:.0f} ms"),
    ]
    if latency_ms > 0:
        rows.append(("Throughput", f"{tokens_used * 1000 / latency_ms:.1f} tokens/s"))
    _key_value_table("Generation", rows)


def print_vocabulary_stats(stats: Dict[str, Any], model_info: Dict[str, Any]) -> None:
    """
    Summarize a vocabulary classification.

    Args:
        stats: ``VocabularyClassification.get_stats()``
        model_info: ``TokenBackend.get_model_info()``
    """
    rows: List[Tuple[str, Cell]] = [
        (key.replace("_", " "), model_info[key])
        for key in ("backend", "model_id", "model_path", "device")
        if key in model_info
    ]
    rows += [
        ("vocabulary size", stats["vocab_size"]),
        ("quote token", stats["quote_token"]),
        ("string tokens", f"{stats['num_string_content_tokens']} ({stats['string_content_ratio']:.1%})"),
        ("digit tokens", stats["num_digit_tokens"]),
        ("leading digit tokens", stats["num_leading_digit_tokens"]),
        ("number terminators", stats["num_number_terminators"]),
    ]
    for key in ("zero_token", "minus_token", "decimal_point_token"):
        value = stats[key]
        rows.append((key.replace("_", " "), Text("missing", style="yellow") if value is None else str(value)))

    _key_value_table("Vocabulary", rows)


def print_device_info(info: Dict[str, Any]) -> None:
    """Show ``backends.get_device_info()``."""
    _key_value_table("Device", ((key.replace("_", " "), value) for key, value in info.items()))


def create_progress_spinner() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    )


def print_model_loading(model_id: str, backend: Optional[str]) -> None:
    print_info(f"Loading [bold]{model_id}[/bold] (backend: {backend or 'auto'})")
