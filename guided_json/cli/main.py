"""
Command line interface for guided-json.

    guided-json generate       constrained generation against a schema file
    guided-json validate       check an existing JSON file against a schema
    guided-json inspect-vocab  show how a model's vocabulary is classified

Global options (before the command): ``--log-level`` and ``--version``.
"""

from pathlib import Path
from typing import Any, Callable, Optional

import typer
from typing_extensions import Annotated

from guided_json.utils import setup_logging

from .commands import generate_command, inspect_vocab_command, validate_command
from .display import print_error


DEFAULT_MODEL = "TinyLlama/TinyLlama-1.1B-Chat-v1.0"

SchemaFile = Annotated[
    Path,
    typer.Option("--schema", "-s", help="JSON Schema file", exists=True, dir_okay=False),
]
ModelId = Annotated[
    str,
    typer.Option("--model", "-m", help="HuggingFace model id or GGUF path"),
]
BackendName = Annotated[
    Optional[str],
    typer.Option("--backend", "-b", help="transformers or llamacpp (auto-detected if omitted)"),
]
DeviceName = Annotated[
    Optional[str],
    typer.Option("--device", "-d", help="cpu, cuda or mps (auto-detected if omitted)"),
]
ShowSchema = Annotated[
    bool,
    typer.Option("--show-schema", help="Print the schema first"),
]

app = typer.Typer(
    name="guided-json",
    help="Schema-constrained JSON generation for LLMs.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _run(command: Callable[..., None], **kwargs: Any) -> None:
    """Run a command, turning unexpected exceptions into exit code 1."""
    try:
        command(**kwargs)
    except Exception as e:
        print_error(f"{command.__name__.replace('_command', '')} failed: {e}")
        raise typer.Exit(code=1)


@app.command("generate")
def generate(
    schema: SchemaFile,
    prompt: Annotated[Optional[str], typer.Option("--prompt", "-p", help="Prompt to prime the model with")] = None,
    model: ModelId = DEFAULT_MODEL,
    backend: BackendName = None,
    device: DeviceName = None,
    max_tokens: Annotated[int, typer.Option("--max-tokens", min=1, help="Token budget for the whole value")] = 256,
    temperature: Annotated[float, typer.Option("--temperature", "-t", min=0.0, help="0 means greedy")] = 0.0,
    top_k: Annotated[Optional[int], typer.Option("--top-k", min=1, help="Keep the k best allowed tokens")] = None,
    top_p: Annotated[Optional[float], typer.Option("--top-p", help="Nucleus threshold in (0, 1]")] = None,
    seed: Annotated[Optional[int], typer.Option("--seed", help="Seed for reproducible sampling")] = None,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write the JSON here")] = None,
    show_schema: ShowSchema = False,
) -> None:
    """
    Generate JSON that parses and follows SCHEMA's structure.

    Example:
        guided-json generate -s user.json -p "A user called Alice" -o alice.json
    """
    _run(
        generate_command,
        prompt=prompt,
        schema_path=schema,
        model=model,
        backend=backend,
        device=device,
        max_tokens=max_tokens,
        temperature=temperature,
        top_k=top_k,
        top_p=top_p,
        seed=seed,
        output_path=output,
        show_schema=show_schema,
    )


@app.command("validate")
def validate(
    json_file: Annotated[Path, typer.Option("--json", "-j", help="JSON file to check", exists=True, dir_okay=False)],
    schema: SchemaFile,
    show_schema: ShowSchema = False,
) -> None:
    """
    Validate a JSON file against a schema (exit code 1 if invalid).

    Example:
        guided-json validate -j alice.json -s user.json
    """
    _run(validate_command, json_path=json_file, schema_path=schema, show_schema=show_schema)


@app.command("inspect-vocab")
def inspect_vocab(
    model: ModelId = DEFAULT_MODEL,
    backend: BackendName = None,
    device: DeviceName = None,
) -> None:
    """
    Show how a model's vocabulary is classified for structured generation.

    Example:
        guided-json inspect-vocab -m gpt2
    """
    _run(inspect_vocab_command, model=model, backend=backend, device=device)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[bool, typer.Option("--version", "-v", help="Print the version and exit")] = False,
    log_level: Annotated[str, typer.Option("--log-level", "-l", help="DEBUG, INFO, WARNING or ERROR")] = "WARNING",
) -> None:
    """Every token is sampled from a set that keeps the output valid JSON."""
    if version:
        from guided_json import __version__
        typer.echo(f"guided-json version {__version__}")
        raise typer.Exit()

    try:
        setup_logging(level=log_level)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(code=2)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def cli() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    cli()
