"""Framework detectors."""
from __future__ import annotations

from typing import List, Optional

from ..authorization import AuthVocabulary
from .base import BaseDetector, FrameworkGrammar, GroupBinding, GroupInfo, GroupTable, HandlerPosition
from .chi import ChiDetector
from .echo import EchoDetector
from .fiber import FiberDetector
from .gin import GinDetector
from .nethttp import NetHTTPDetector

DETECTOR_CLASSES = (GinDetector, EchoDetector, ChiDetector, FiberDetector, NetHTTPDetector)


def default_detectors(vocabulary: Optional[AuthVocabulary] = None) -> List[BaseDetector]:
    """One instance of every supported framework detector."""
    return [cls(vocabulary) for cls in DETECTOR_CLASSES]


__all__ = [
    "BaseDetector",
    "ChiDetector",
    "DETECTOR_CLASSES",
    "EchoDetector",
    "FiberDetector",
    "FrameworkGrammar",
    "GinDetector",
    "GroupBinding",
    "GroupInfo",
    "GroupTable",
    "HandlerPosition",
    "NetHTTPDetector",
    "default_detectors",
]
