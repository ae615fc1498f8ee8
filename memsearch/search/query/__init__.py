"""Query construction and natural-language processing subsystem."""

from .builder import (
    AggregateQuery,
    Condition,
    GroupBy,
    Grouping,
    Operator,
    Query,
    QueryBuilder,
    Sort,
    StoreQuery,
    build_base_query,
    build_search_query,
    privacy_gate,
    split_terms,
)
from .nlp import NaturalLanguageProcessor, ProcessedQuery

__all__ = [
    "AggregateQuery",
    "Condition",
    "GroupBy",
    "Grouping",
    "Operator",
    "Query",
    "QueryBuilder",
    "Sort",
    "StoreQuery",
    "build_base_query",
    "build_search_query",
    "privacy_gate",
    "split_terms",
    "NaturalLanguageProcessor",
    "ProcessedQuery",
]
