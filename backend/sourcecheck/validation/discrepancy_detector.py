"""Discrepancy Detector — lexical checks of a component against its source documents.

Pure and I/O free: same component + documents → same discrepancies.
No LLM calls, no semantic similarity, only substring and word-overlap tests.
"""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from sourcecheck.validation.models import (
    ComponentSnapshot,
    Discrepancy,
    DiscrepancyType,
    Severity,
    SourceDocument,
    make_discrepancy,
)

# Share of excerpt words that must appear in the document for a fuzzy match
FUZZY_MATCH_THRESHOLD = 0.8

# Words of this length or shorter are ignored by the fuzzy matcher
MIN_WORD_LENGTH = 2

# Characters captured on each side of a title mention
CONTEXT_WINDOW = 50

EXCERPT_PREVIEW_LENGTH = 100

NEGATION_PATTERNS = [
    re.compile(r"not\s+", re.IGNORECASE),
    re.compile(r"don't\s+", re.IGNORECASE),
    re.compile(r"doesn't\s+", re.IGNORECASE),
    re.compile(r"shouldn't\s+", re.IGNORECASE),
    re.compile(r"cannot\s+", re.IGNORECASE),
    re.compile(r"never\s+", re.IGNORECASE),
    re.compile(r"deprecated", re.IGNORECASE),
    re.compile(r"removed", re.IGNORECASE),
    re.compile(r"obsolete", re.IGNORECASE),
]


class OverallSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    NONE = "NONE"


class SuggestedFixType(str, Enum):
    UPDATE_TITLE = "UPDATE_TITLE"
    UPDATE_DESCRIPTION = "UPDATE_DESCRIPTION"
    ADD_SOURCE = "ADD_SOURCE"
    REVIEW_MANUALLY = "REVIEW_MANUALLY"


class SuggestedFix(BaseModel):
    """A remediation hint for a single discrepancy."""

    type: SuggestedFixType
    message: str
    suggested_value: Optional[str] = None

    model_config = {"use_enum_values": True}


class DiscrepancyDetector:
    """Detects content mismatches, missing data and conflicting sources."""

    def __init__(
        self,
        fuzzy_match_threshold: float = FUZZY_MATCH_THRESHOLD,
        context_window: int = CONTEXT_WINDOW,
    ):
        self.fuzzy_match_threshold = fuzzy_match_threshold
        self.context_window = context_window

    def detect_discrepancies(
        self, component: ComponentSnapshot, documents: list[SourceDocument]
    ) -> list[Discrepancy]:
        """Run every check, in order: mismatch, missing data, conflicting sources."""
        discrepancies: list[Discrepancy] = []
        discrepancies.extend(self.detect_content_mismatch(component, documents))
        discrepancies.extend(self.detect_missing_data(component, documents))
        discrepancies.extend(self.detect_conflicting_sources(component, documents))
        return discrepancies

    def detect_content_mismatch(
        self, component: ComponentSnapshot, documents: list[SourceDocument]
    ) -> list[Discrepancy]:
        discrepancies = []

        if not documents:
            return discrepancies

        excerpt = component.source_excerpt
        title = component.title

        for doc in documents:
            content_lower = doc.content.lower()

            # ── 1. Excerpt must (approximately) appear in the document ──
            if excerpt and not self._fuzzy_match(excerpt.lower(), content_lower):
                discrepancies.append(make_discrepancy(
                    DiscrepancyType.CONTENT_MISMATCH,
                    message=f'Source excerpt not found in document "{doc.filename or doc.id}"',
                    expected_value=excerpt[:EXCERPT_PREVIEW_LENGTH],
                    actual_value="Not found in document",
                    source_document_id=doc.id,
                ))

            # ── 2. Title should be mentioned somewhere in the document ──
            if title.lower() not in content_lower:
                discrepancies.append(make_discrepancy(
                    DiscrepancyType.CONTENT_MISMATCH,
                    severity=Severity.MEDIUM,
                    message=f'Component title "{title}" not found in source document',
                    expected_value=title,
                    actual_value="Not mentioned in document",
                    source_document_id=doc.id,
                ))

        return discrepancies

    def detect_missing_data(
        self, component: ComponentSnapshot, documents: list[SourceDocument]
    ) -> list[Discrepancy]:
        discrepancies = []

        if not component.description or not component.description.strip():
            discrepancies.append(make_discrepancy(
                DiscrepancyType.MISSING_DATA,
                message="Component is missing a description",
            ))

        if documents and not component.source_excerpt:
            discrepancies.append(make_discrepancy(
                DiscrepancyType.MISSING_DATA,
                severity=Severity.LOW,
                message="Component has no linked source excerpt from documents",
            ))

        if len(component.title) < 3:
            discrepancies.append(make_discrepancy(
                DiscrepancyType.MISSING_DATA,
                severity=Severity.LOW,
                message="Component title is too short",
                actual_value=component.title,
            ))

        return discrepancies

    def detect_conflicting_sources(
        self, component: ComponentSnapshot, documents: list[SourceDocument]
    ) -> list[Discrepancy]:
        """Flag a title that is described positively in one place and negatively in another."""
        discrepancies = []

        if len(documents) < 2:
            return discrepancies

        mentions_per_doc: dict[str, list[str]] = {}
        for doc in documents:
            mentions = self._find_mentions(component.title, doc.content)
            if mentions:
                mentions_per_doc.setdefault(doc.id, []).extend(mentions)

        if len(mentions_per_doc) < 2:
            return discrepancies

        all_mentions = [m for mentions in mentions_per_doc.values() for m in mentions]
        if self._has_context_conflict(all_mentions):
            discrepancies.append(make_discrepancy(
                DiscrepancyType.CONFLICTING_SOURCES,
                message=f'"{component.title}" is described differently in multiple documents',
            ))

        return discrepancies

    def generate_suggested_fixes(self, discrepancies: list[Discrepancy]) -> list[SuggestedFix]:
        fixes = []

        for discrepancy in discrepancies:
            kind = DiscrepancyType(discrepancy.type)

            if kind == DiscrepancyType.CONTENT_MISMATCH:
                if discrepancy.expected_value:
                    fixes.append(SuggestedFix(
                        type=SuggestedFixType.UPDATE_TITLE,
                        message="Update component to match source document",
                        suggested_value=discrepancy.expected_value,
                    ))
                else:
                    fixes.append(SuggestedFix(
                        type=SuggestedFixType.REVIEW_MANUALLY,
                        message="Review and update component content manually",
                    ))

            elif kind == DiscrepancyType.MISSING_DATA:
                if "description" in discrepancy.message:
                    fixes.append(SuggestedFix(
                        type=SuggestedFixType.UPDATE_DESCRIPTION,
                        message="Add a description to this component",
                    ))
                elif "source" in discrepancy.message:
                    fixes.append(SuggestedFix(
                        type=SuggestedFixType.ADD_SOURCE,
                        message="Link this component to a source document",
                    ))

            elif kind == DiscrepancyType.CONFLICTING_SOURCES:
                fixes.append(SuggestedFix(
                    type=SuggestedFixType.REVIEW_MANUALLY,
                    message="Review conflicting sources and determine correct information",
                ))

            elif kind == DiscrepancyType.OUTDATED_REFERENCE:
                fixes.append(SuggestedFix(
                    type=SuggestedFixType.REVIEW_MANUALLY,
                    message="Check if source document needs updating",
                ))

            elif kind == DiscrepancyType.SCHEMA_VIOLATION:
                fixes.append(SuggestedFix(
                    type=SuggestedFixType.REVIEW_MANUALLY,
                    message="Fix schema violation in component data",
                ))

        return fixes

    def calculate_overall_severity(self, discrepancies: list[Discrepancy]) -> OverallSeverity:
        if not discrepancies:
            return OverallSeverity.NONE

        severities = {Severity(d.severity) for d in discrepancies}

        if Severity.CRITICAL in severities:
            return OverallSeverity.CRITICAL
        if Severity.HIGH in severities:
            return OverallSeverity.MAJOR
        return OverallSeverity.MINOR

    # ── Helper Methods ──

    def _fuzzy_match(self, needle: str, haystack: str) -> bool:
        """Exact substring, or enough of the needle's words present in the haystack."""
        if needle in haystack:
            return True

        words = [w for w in needle.split() if len(w) > MIN_WORD_LENGTH]
        if not words:
            return False

        matched = sum(1 for word in words if word in haystack)
        return matched / len(words) >= self.fuzzy_match_threshold

    def _find_mentions(self, term: str, content: str) -> list[str]:
        """Return the text surrounding every case-insensitive occurrence of term."""
        if not term:
            return []

        mentions = []
        term_lower = term.lower()
        content_lower = content.lower()

        index = content_lower.find(term_lower)
        while index != -1:
            start = max(0, index - self.context_window)
            end = min(len(content), index + len(term) + self.context_window)
            mentions.append(content[start:end])
            index = content_lower.find(term_lower, index + len(term))

        return mentions

    @staticmethod
    def _is_negated(context: str) -> bool:
        return any(pattern.search(context) for pattern in NEGATION_PATTERNS)

    def _has_context_conflict(self, contexts: list[str]) -> bool:
        if len(contexts) < 2:
            return False

        has_negation = any(self._is_negated(c) for c in contexts)
        has_positive = any(not self._is_negated(c) for c in contexts)
        return has_negation and has_positive
