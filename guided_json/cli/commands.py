"""
Implementations behind the typer commands in ``main.py``.

Each command prints through ``display`` and signals failure with
``SystemExit(1)``; ``main._run`` turns anything unexpected into the same
exit code.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from guided_json.errors import ConstrainedGenerationError, SchemaError

from .display import (
    console,
    create_progress_spinner,
    print_device_info,
    print_error,
    print_header,
    print_json,
    print_model_loading,
    print_result_stats,
    print_schema,
    print_settings,
    print_success,
    print_validation_errors,
    print_vocabulary_stats,
    print_warning,
)

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> Any:
    """
    Parse a JSON file.

    Raises:
        ValueError: If the file is missing or not valid JSON
    """
    if not path.exists():
        raise ValueError(f"File not found: {path}")
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path.name}: {e}") from e


def load_schema_file(schema_path: Path) -> Dict[str, Any]:
    """
    Load a JSON Schema file.

    Raises:
        ValueError: If the file is missing, not JSON, or not a JSON object
    """
    schema = _read_json(schema_path)
    if not isinstance(schema, dict):
        raise ValueError(f"Schema must be a JSON object, got {type(schema).__name__}")
    return schema


def _load_or_exit(loader, path: Path, label: str) -> Any:
    try:
        value = loader(path)
    except ValueError as e:
        print_error(f"Could not load {label}: {e}")
        raise SystemExit(1)
    print_success(f"Loaded {label} from {path}")
    return value


def load_backend(model: str, backend: Optional[str], device: Optional[str], sampler=None):
    """Create a token backend behind a spinner; exit 1 if it cannot be loaded."""
    from guided_json.backends import BackendFactory

    print_model_loading(model, backend)
    options = {} if sampler is None else {'sampler': sampler}

    try:
        with create_progress_spinner() as progress:
            progress.add_task(description="Loading model...", total=None)
            token_backend = BackendFactory.create(model, backend_type=backend, device=device, **options)
    except Exception as e:
        logger.debug("Backend creation failed", exc_info=True)
        print_error(f"Failed to load model: {e}")
        raise SystemExit(1)

    print_success("Model loaded")
    return token_backend


def generate_command(
    prompt: Optional[str],
    schema_path: Path,
    model: str,
    backend: Optional[str],
    device: Optional[str],
    max_tokens: int,
    temperature: float,
    top_k: Optional[int],
    top_p: Optional[float],
    seed: Optional[int],
    output_path: Optional[Path],
    show_schema: bool
) -> None:
    """
    Load a schema and a model, generate once, report and optionally save.

    Exits with 1 on load failures, unsupported schemas and decoder errors
    (for example a budget that is too small). Output that parses but breaks
    an unenforced keyword is shown with its validation errors and still
    exits 0.
    """
    from guided_json import StructuredGenerator
    from guided_json.backends.sampling import build_sampler

    print_header("guided-json generate")

    schema = _load_or_exit(load_schema_file, schema_path, "schema")
    if show_schema:
        print_schema(schema)

    sampler = build_sampler(temperature=temperature, top_k=top_k, top_p=top_p, seed=seed)
    print_settings({
        "Prompt": prompt or "(none)",
        "Model": model,
        "Device": device or "auto",
        "Token budget": max_tokens,
        "Sampler": repr(sampler),
    })

    generator = StructuredGenerator(load_backend(model, backend, device, sampler=sampler))

    try:
        with create_progress_spinner() as progress:
            progress.add_task(description="Generating...", total=None)
            result = generator.generate(schema, max_tokens=max_tokens, prompt=prompt)
    except (ConstrainedGenerationError, SchemaError) as e:
        print_error(f"Generation failed: {e}")
        raise SystemExit(1)

    console.print()
    print_json(result.output, title="Generated Output")
    if result.is_valid:
        print_success("Output satisfies the schema")
    else:
        print_warning("Output does not satisfy every schema constraint")
        print_validation_errors(result.validation_errors)

    print_result_stats(
        is_valid=result.is_valid,
        tokens_used=result.tokens_used,
        token_budget=result.token_budget,
        latency_ms=result.latency_ms
    )

    if output_path is not None:
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(json.dumps(json.loads(result.output), indent=2))
        except OSError as e:
            print_warning(f"Could not write {output_path}: {e}")
        else:
            print_success(f"Saved to {output_path}")


def validate_command(json_path: Path, schema_path: Path, show_schema: bool) -> None:
    """Validate a JSON file against a schema file; exit 1 if it does not conform."""
    from guided_json.validation import validate

    print_header("guided-json validate")

    schema = _load_or_exit(load_schema_file, schema_path, "schema")
    if show_schema:
        print_schema(schema)

    data = _load_or_exit(_read_json, json_path, "JSON")
    print_json(data, title="Input JSON")

    result = validate(json.dumps(data), schema)
    if not result.is_valid:
        print_error("Validation failed")
        print_validation_errors(result.errors)
        raise SystemExit(1)
    print_success("Validation passed")


def inspect_vocab_command(model: str, backend: Optional[str], device: Optional[str]) -> None:
    """Classify a model's vocabulary and print the resulting token-set sizes."""
    from guided_json.backends import get_device_info
    from guided_json.decoding import classify_vocabulary

    print_header("guided-json inspect-vocab")

    token_backend = load_backend(model, backend, device)

    try:
        with create_progress_spinner() as progress:
            progress.add_task(description="Classifying vocabulary...", total=None)
            vocabulary = classify_vocabulary(token_backend)
    except ConstrainedGenerationError as e:
        print_error(f"Vocabulary cannot be used for structured generation: {e}")
        raise SystemExit(1)

    print_vocabulary_stats(vocabulary.get_stats(), token_backend.get_model_info())
    print_device_info(get_device_info())
