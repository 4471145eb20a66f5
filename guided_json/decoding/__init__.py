"""
Decoding module.

Token-level constrained decoding: every token the model produces is sampled
from a set that keeps the output valid JSON for the schema.

Components:
    - vocabulary: classify the backend vocabulary into token sets
    - cache: VocabularyCache for reusing classifications
    - budget: TokenBudget shared by a run
    - context: DecodingContext (backend + budget + vocabulary + config)
    - emitters: LiteralEmitter, FreeStringGenerator, NumberGenerator
    - literal_choice: LiteralChoiceMatcher for enums and booleans
    - walker: StructuralWalker, the entry point of a run
"""

from guided_json.decoding.budget import TokenBudget
from guided_json.decoding.cache import VocabularyCache
from guided_json.decoding.context import DecodingContext
from guided_json.decoding.emitters import FreeStringGenerator, LiteralEmitter, NumberGenerator
from guided_json.decoding.literal_choice import LiteralChoiceMatcher
from guided_json.decoding.vocabulary import VocabularyClassification, classify_vocabulary
from guided_json.decoding.walker import ConstrainedJSONGenerator, StructuralWalker

__all__ = [
    "TokenBudget",
    "VocabularyCache",
    "DecodingContext",
    "LiteralEmitter",
    "FreeStringGenerator",
    "NumberGenerator",
    "LiteralChoiceMatcher",
    "VocabularyClassification",
    "classify_vocabulary",
    "StructuralWalker",
    "ConstrainedJSONGenerator",
]
