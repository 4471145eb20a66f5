"""
Command-line interface module.

A rich terminal interface for guided_json using Typer and Rich.

Commands:
    - generate: Generate JSON conforming to a schema
    - validate: Validate existing JSON against a schema
    - inspect-vocab: Show vocabulary classification for a model

Example Usage:
    ```bash
    guided-json generate \\
        --schema schema.json \\
        --prompt "Generate a user profile" \\
        --model "TinyLlama/TinyLlama-1.1B-Chat-v1.0"

    guided-json --log-level INFO generate \\
        --schema user.json \\
        --model models/mistral-7b.gguf \\
        --temperature 0.7 --top-p 0.9 --seed 7 \\
        --output result.json

    guided-json inspect-vocab --model gpt2
    ```
"""

from .main import app

__all__ = ["app"]
