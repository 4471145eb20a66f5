#!/usr/bin/env python3
"""
Demo: Person record with nested fields.

This demonstrates generating a person profile with:
- A nested object pulled in through $ref / $defs
- A string enum (role)
- A clamped integer (age)
- A fixed-size array (tags)

Every token is sampled from a set that keeps the output valid JSON, so
the result always parses; keywords the decoder does not enforce are
reported by validation instead.
"""

import json

from guided_json import StructuredGenerator
from guided_json.backends import BackendFactory
from guided_json.errors import ConstrainedGenerationError


def main():
    print("=" * 60)
    print("guided-json Demo: Person Record with Nested Fields")
    print("=" * 60)

    schema = {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "age": {"type": "integer", "minimum": 0, "maximum": 150},
            "role": {"type": "string", "enum": ["admin", "editor", "viewer"]},
            "address": {"$ref": "#/$defs/Address"},
            "tags": {"type": "array", "items": {"type": "string"}, "minItems": 2}
        },
        "required": ["name", "age", "address"],
        "$defs": {
            "Address": {
                "type": "object",
                "properties": {
                    "street": {"type": "string"},
                    "city": {"type": "string"}
                },
                "required": ["city"]
            }
        }
    }

    print("\nSchema:")
    print(json.dumps(schema, indent=2))

    print("\n" + "=" * 60)
    print("Loading Model...")
    print("=" * 60)

    backend = BackendFactory.create("TinyLlama/TinyLlama-1.1B-Chat-v1.0", device=None)
    generator = StructuredGenerator(backend)

    print("✓ Generator initialized")

    prompts = [
        "Generate a person named Alice, age 28, an admin living in NYC",
        "Create a user profile for Bob Smith, 35 years old, residing in San Francisco",
        "Make a person record for Charlie, age 42"
    ]

    for i, prompt in enumerate(prompts, 1):
        print("\n" + "=" * 60)
        print(f"Test {i}/{len(prompts)}")
        print("=" * 60)
        print(f"Prompt: {prompt}")

        try:
            result = generator.generate(schema, max_tokens=200, prompt=prompt)
        except ConstrainedGenerationError as e:
            print(f"✗ Generation failed ({e.kind}): {e}")
            continue

        print(f"\nValid: {'✓' if result.is_valid else '✗'} {result.is_valid}")
        print(f"Latency: {result.latency_ms:.0f}ms")
        print(f"Tokens: {result.tokens_used}/{result.token_budget}")

        print("\nOutput:")
        print(json.dumps(json.loads(result.output), indent=2))

        for error in result.validation_errors:
            print(f"  - {error}")

    print("\n" + "=" * 60)
    print("Demo Complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
