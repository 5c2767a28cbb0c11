"""Middleware classification, authorization extraction and merging."""

from .classifier import DEFAULT_VOCABULARY, AuthVocabulary
from .extractor import AuthorizationExtractor, MiddlewareRef
from .merger import merge

__all__ = [
    "AuthVocabulary",
    "AuthorizationExtractor",
    "DEFAULT_VOCABULARY",
    "MiddlewareRef",
    "merge",
]
