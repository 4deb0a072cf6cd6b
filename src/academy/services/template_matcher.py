"""Template Matcher — resolves template subject slots to aggregated scores.

Template authors and the subject registry are edited independently, so slot
names drift from subject names. Each slot is resolved by the first strategy
that finds a record, from most to least precise:

1. NAME     exact lowercased slot name against a subject-name key
2. ID       the slot's own id against a subject-id key
3. FUZZY    substring containment either way against subject-name keys
4. INDIRECT slot name -> subject id through the subject directory
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from academy.models.marksheet import (
    AggregatedScore,
    MatchStrategy,
    ResolvedSlot,
    ScoreRecord,
    TemplateSubjectSlot,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_MARKS = 100


def _name_key(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def flatten_mark_documents(documents: Iterable[Mapping[str, Any]]) -> list[ScoreRecord]:
    """One ``ScoreRecord`` per holder entry of each stored marks document.

    Missing marks count as 0; a missing or zero maximum counts as 100.
    """
    records: list[ScoreRecord] = []
    for doc in documents:
        holders = doc.get("students")
        if not isinstance(holders, Mapping):
            continue
        subject_id = str(doc.get("subjectId") or "")
        for holder_id, entry in holders.items():
            if not isinstance(entry, Mapping):
                continue
            records.append(ScoreRecord(
                holder_id=str(holder_id),
                subject_id=subject_id,
                marks=entry.get("marks") or 0,
                max_marks=entry.get("maxMarks") or DEFAULT_MAX_MARKS,
            ))
    return records


class SubjectDirectory:
    """Subject id -> display name, and lowercased name -> subject id."""

    def __init__(self, subjects: Iterable[Mapping[str, Any]] = ()) -> None:
        self.names_by_id: dict[str, str] = {}
        self.ids_by_name: dict[str, str] = {}
        for subject in subjects:
            subject_id = subject.get("subjectId")
            if not subject_id:
                continue
            name = subject.get("name") or ""
            self.names_by_id[str(subject_id)] = name
            if name:
                self.ids_by_name[_name_key(name)] = str(subject_id)

    def name_of(self, subject_id: str) -> str:
        return self.names_by_id.get(subject_id) or subject_id

    def id_of(self, name: str) -> Optional[str]:
        return self.ids_by_name.get(_name_key(name))


@dataclass
class HolderScores:
    """One holder's aggregated scores, reachable by subject name and by subject id."""

    by_name: dict[str, AggregatedScore] = field(default_factory=dict)
    by_id: dict[str, AggregatedScore] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.by_name or self.by_id)


def _accumulate(index: dict[str, AggregatedScore], key: str, record: ScoreRecord,
                subject_name: str) -> None:
    existing = index.get(key)
    if existing is None:
        index[key] = AggregatedScore(
            subject_id=record.subject_id,
            subject_name=subject_name,
            marks=record.marks,
            max_marks=record.max_marks,
        )
    else:
        existing.marks += record.marks
        existing.max_marks += record.max_marks


def aggregate_scores(records: Iterable[ScoreRecord],
                     directory: SubjectDirectory | None = None) -> dict[str, HolderScores]:
    """Sum marks and maximums per (holder, subject) before any matching."""
    directory = directory or SubjectDirectory()
    by_holder: dict[str, HolderScores] = {}
    for record in records:
        scores = by_holder.setdefault(record.holder_id, HolderScores())
        subject_name = directory.name_of(record.subject_id)
        _accumulate(scores.by_name, _name_key(subject_name), record, subject_name)
        _accumulate(scores.by_id, record.subject_id, record, subject_name)
    return by_holder


# A strategy looks up one slot in one holder's scores; None means "no match".
Strategy = Callable[[TemplateSubjectSlot, HolderScores, SubjectDirectory], Optional[AggregatedScore]]


def match_by_name(slot: TemplateSubjectSlot, scores: HolderScores,
                  directory: SubjectDirectory) -> Optional[AggregatedScore]:
    name = _name_key(slot.name)
    return scores.by_name.get(name) if name else None


def match_by_id(slot: TemplateSubjectSlot, scores: HolderScores,
                directory: SubjectDirectory) -> Optional[AggregatedScore]:
    return scores.by_id.get(slot.id) if slot.id else None


def match_fuzzy(slot: TemplateSubjectSlot, scores: HolderScores,
                directory: SubjectDirectory) -> Optional[AggregatedScore]:
    name = _name_key(slot.name)
    if not name:
        return None
    for key, score in scores.by_name.items():
        if key and (name in key or key in name):
            return score
    return None


def match_indirect(slot: TemplateSubjectSlot, scores: HolderScores,
                   directory: SubjectDirectory) -> Optional[AggregatedScore]:
    if not _name_key(slot.name):
        return None
    subject_id = directory.id_of(slot.name)
    return scores.by_id.get(subject_id) if subject_id else None


DEFAULT_STRATEGIES: list[tuple[MatchStrategy, Strategy]] = [
    (MatchStrategy.NAME, match_by_name),
    (MatchStrategy.ID, match_by_id),
    (MatchStrategy.FUZZY, match_fuzzy),
    (MatchStrategy.INDIRECT, match_indirect),
]


class TemplateMatcher:
    def __init__(self, strategies: list[tuple[MatchStrategy, Strategy]] | None = None) -> None:
        self._strategies = strategies if strategies is not None else DEFAULT_STRATEGIES

    def resolve_slot(self, slot: TemplateSubjectSlot, scores: HolderScores,
                     directory: SubjectDirectory) -> ResolvedSlot:
        for strategy, lookup in self._strategies:
            score = lookup(slot, scores, directory)
            if score is not None:
                return ResolvedSlot(
                    id=slot.id,
                    name=slot.name,
                    max_marks=slot.max_marks,
                    obtained_marks=score.marks,
                    strategy=strategy,
                )
        return ResolvedSlot(id=slot.id, name=slot.name, max_marks=slot.max_marks)

    def resolve(
        self,
        slots: list[TemplateSubjectSlot],
        holder_id: str,
        scores_by_holder: Mapping[str, HolderScores],
        directory: SubjectDirectory | None = None,
    ) -> list[ResolvedSlot]:
        """Resolve every slot for one holder, preserving slot order.

        Unmatched slots keep ``obtained_marks=None`` so that downstream
        validation can tell them apart from a genuine zero.
        """
        directory = directory or SubjectDirectory()
        scores = scores_by_holder.get(holder_id) or HolderScores()
        resolved = [self.resolve_slot(slot, scores, directory) for slot in slots]
        for slot in resolved:
            if not slot.is_filled:
                logger.debug(
                    "No score for slot %r of holder %s (available: %s)",
                    slot.name, holder_id, sorted(scores.by_name),
                )
        return resolved
