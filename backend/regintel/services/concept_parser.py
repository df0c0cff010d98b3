"""
Parsing of capture_concepts tool payloads.

Accepted shapes: a JSON string (decoded first), {"concepts": [...]}, or a
bare list of concept objects. Anything else yields no concepts and a warning;
this parser never raises.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from regintel.observability.metrics import concept_capture_failures_total
from regintel.schemas.schemas import CapturedConcept

logger = logging.getLogger(__name__)


def parse_captured_concepts(payload: Any) -> list[CapturedConcept]:
    if not payload:
        return []

    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            logger.warning("Failed to parse capture_concepts payload: %s", e)
            concept_capture_failures_total.labels(stage="parse").inc()
            return []

    if isinstance(payload, dict) and isinstance(payload.get("concepts"), list):
        items = payload["concepts"]
    elif isinstance(payload, list):
        items = payload
    else:
        logger.warning("Unrecognized capture_concepts payload shape: %s", type(payload).__name__)
        concept_capture_failures_total.labels(stage="parse").inc()
        return []

    concepts: list[CapturedConcept] = []
    for item in items:
        try:
            concepts.append(CapturedConcept.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping invalid captured concept: %s", e.errors()[0]["msg"])
    return concepts
