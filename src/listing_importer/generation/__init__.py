"""Structured generation layer: listing content to one-pager config."""

from listing_importer.generation.client import GenerationClient, GenerationResponse
from listing_importer.generation.ordering import CANONICAL_KEY_ORDER, sort_config
from listing_importer.generation.refinement import (
    Refinement,
    RefinementInput,
    format_refinement_input,
    merge,
    narrow,
)
from listing_importer.generation.schema import ListingConfig
from listing_importer.generation.service import GenerationResult, StructuredGenerator

__all__ = [
    "CANONICAL_KEY_ORDER",
    "GenerationClient",
    "GenerationResponse",
    "GenerationResult",
    "ListingConfig",
    "Refinement",
    "RefinementInput",
    "StructuredGenerator",
    "format_refinement_input",
    "merge",
    "narrow",
    "sort_config",
]
