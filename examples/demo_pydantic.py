#!/usr/bin/env python3
"""
Demo: Pydantic models and sampling options.

Generates the same model greedily and with seeded multinomial sampling,
then parses each output back into the model.
"""

from typing import List, Optional

from pydantic import BaseModel

from guided_json import StructuredGenerator
from guided_json.backends import BackendFactory, GreedySampler, MultinomialSampler
from guided_json.decoding import VocabularyCache


class Ingredient(BaseModel):
    name: str
    grams: int


class Recipe(BaseModel):
    title: str
    vegetarian: bool
    ingredients: List[Ingredient]
    notes: Optional[str] = None


def main():
    print("=" * 60)
    print("guided-json Demo: Pydantic Recipe")
    print("=" * 60)

    model_id = "TinyLlama/TinyLlama-1.1B-Chat-v1.0"
    prompt = "Write a simple pancake recipe as JSON:"
    cache = VocabularyCache()

    samplers = [
        ("greedy", GreedySampler()),
        ("multinomial", MultinomialSampler(temperature=0.7, top_p=0.9, seed=7)),
    ]

    for label, sampler in samplers:
        print(f"\n--- {label} ---")
        backend = BackendFactory.create(model_id, sampler=sampler)
        generator = StructuredGenerator(backend, cache=cache)

        result = generator.generate(Recipe, max_tokens=300, prompt=prompt)
        print(result.output)

        if result.is_valid:
            recipe = Recipe.model_validate_json(result.output)
            print(f"✓ {recipe.title}: {len(recipe.ingredients)} ingredients")
        else:
            print(f"✗ {len(result.validation_errors)} validation errors")

    print(f"\nVocabulary cache: {cache.get_stats()}")


if __name__ == "__main__":
    main()
