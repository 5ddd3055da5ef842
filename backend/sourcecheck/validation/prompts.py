"""Assessor prompt template and tolerant parsing of the assessor's JSON reply."""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import structlog

from sourcecheck.validation.models import (
    ComponentSnapshot,
    Discrepancy,
    get_discrepancy_severity,
    normalize_discrepancy_type,
)

logger = structlog.get_logger()

DOCUMENT_EXCERPT_LIMIT = 3000
DEFAULT_CONFIDENCE = 0.7

VALIDATION_PROMPT = """You are a validation assistant. Compare the following diagram component with its source documentation and identify any discrepancies.

COMPONENT:
- Title: {title}
- Type: {component_type}
- Description: {description}
- Source Excerpt: {source_excerpt}

SOURCE DOCUMENT:
{document}

TASK:
1. Compare the component information with the source document
2. Identify any discrepancies or inconsistencies
3. Rate your confidence in the validation (0-1)

RESPONSE FORMAT (JSON):
{{
  "isValid": true/false,
  "confidence": 0.0-1.0,
  "discrepancies": [
    {{
      "type": "CONTENT_MISMATCH" | "MISSING_DATA" | "CONFLICTING_SOURCES" | "SCHEMA_VIOLATION",
      "message": "Description of the discrepancy",
      "expectedValue": "What the document says",
      "actualValue": "What the component says"
    }}
  ],
  "reasoning": "Brief explanation of your validation"
}}"""


@dataclass
class ValidationContext:
    """A component together with the linked document's content and timestamp."""

    component: ComponentSnapshot
    document_content: Optional[str] = None
    document_updated_at: Optional[datetime] = None


@dataclass
class AssessmentResult:
    discrepancies: list[Discrepancy] = field(default_factory=list)
    confidence: float = DEFAULT_CONFIDENCE


def build_validation_prompt(
    context: ValidationContext,
    document_limit: int = DOCUMENT_EXCERPT_LIMIT,
) -> str:
    component = context.component
    document = (
        context.document_content[:document_limit]
        if context.document_content
        else "No source document available"
    )

    return VALIDATION_PROMPT.format(
        title=component.title,
        component_type=component.component_type,
        description=component.description or "No description provided",
        source_excerpt=component.source_excerpt or "No excerpt available",
        document=document,
    )


def parse_validation_response(text: str, context: ValidationContext) -> AssessmentResult:
    """Turn the assessor reply into typed discrepancies. Never raises.

    Unparseable replies count as zero discrepancies at the default confidence.
    """
    extracted = _extract_json_object(text or "")
    if extracted is None:
        logger.warning("assessor_response_no_json", response_length=len(text or ""))
        return AssessmentResult()

    try:
        parsed = json.loads(extracted)
    except json.JSONDecodeError:
        # Repair only when needed; the fix-up also touches string contents
        try:
            parsed = json.loads(_fix_llm_json(extracted))
            logger.info("assessor_response_recovered", method="fix_llm_json")
        except json.JSONDecodeError as e:
            logger.warning("assessor_response_invalid_json", error=str(e))
            return AssessmentResult()

    if not isinstance(parsed, dict):
        return AssessmentResult()

    raw_items = parsed.get("discrepancies") or []
    if not isinstance(raw_items, list):
        raw_items = []

    source_document_id = context.component.source_document_id
    discrepancies = [
        _to_discrepancy(item, source_document_id)
        for item in raw_items
        if isinstance(item, dict)
    ]

    return AssessmentResult(
        discrepancies=discrepancies,
        confidence=_clamp_confidence(parsed.get("confidence")),
    )


def _to_discrepancy(item: dict, source_document_id: Optional[str]) -> Discrepancy:
    discrepancy_type = normalize_discrepancy_type(item.get("type"))
    return Discrepancy(
        type=discrepancy_type,
        severity=get_discrepancy_severity(discrepancy_type),
        message=_as_text(item.get("message")) or "Unknown discrepancy",
        expected_value=_as_text(item.get("expectedValue")),
        actual_value=_as_text(item.get("actualValue")),
        source_document_id=source_document_id,
    )


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def _clamp_confidence(value: Any) -> float:
    # bool is an int subclass but never a meaningful confidence
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    if value != value:  # NaN
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, float(value)))


def _fix_llm_json(text: str) -> str:
    """Remove trailing commas before } or ]."""
    return re.sub(r",\s*([}\]])", r"\1", text)


def _extract_json_object(text: str) -> Optional[str]:
    """Find and extract the first complete JSON object from text."""
    match = re.search(r"\{", text)
    if not match:
        return None
    # Walk through characters tracking brace depth outside of strings
    depth, in_string, escape_next = 0, False, False
    start = match.start()
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
        elif ch == "\\":
            escape_next = True
        elif ch == '"':
            in_string = not in_string
        elif not in_string and ch == "{":
            depth += 1
        elif not in_string and ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None
