"""SchemaDiscoverer — infers a tenant's field catalog from sampled documents."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from academy.core.config import DiscoveryConfig
from academy.core.protocols import IDocumentStore
from academy.discovery.field_tree import FieldSamples, build_tree
from academy.discovery.labels import derive_label, infer_data_type, stringify_sample, suggest_icon
from academy.models.field_catalog import FieldCatalogEntry
from academy.persistence import MARKS, STUDENTS, SUBJECTS

logger = logging.getLogger(__name__)

MARKS_PREFIX = "marks"
SUBJECT_PREFIX = "subject"
HOLDER_MAP_KEY = "students"
HOLDER_ALIAS_PREFIX = "marks.students.student"

# (alias path, source key) registered from the first sampled document.
HOLDER_ALIASES = (("marks", "marks"), ("maxMarks", "maxMarks"))
MARKS_ALIASES = (("testId", "testId"), ("marksSubjectId", "subjectId"), ("marksClassId", "classId"))
SUBJECT_ALIASES = (("subjectId", "subjectId"), ("subjectName", "name"), ("subjectClassId", "classId"))


class SchemaDiscoverer:
    """Scans students, marks and subjects of one tenant without a predeclared schema.

    Sampling bounds the scan cost; a field populated only outside the sample
    is missed until a later refresh happens to see it.
    """

    def __init__(self, store: IDocumentStore, config: DiscoveryConfig | None = None) -> None:
        self._store = store
        self._config = config or DiscoveryConfig()

    def _sample(self, collection: str, tenant_id: str, limit: int) -> list[dict[str, Any]]:
        docs = self._store.find(collection, {"managementId": tenant_id}, limit=limit)
        logger.debug("Sampled %d %s documents for tenant %s", len(docs), collection, tenant_id)
        return docs

    def collect_samples(self, tenant_id: str) -> FieldSamples:
        samples = FieldSamples()

        for student in self._sample(STUDENTS, tenant_id, self._config.student_sample_limit):
            samples.offer_tree(build_tree(student))

        marks = self._sample(MARKS, tenant_id, self._config.marks_sample_limit)
        for mark in marks:
            samples.offer_tree(build_tree(mark, skip_keys=frozenset({HOLDER_MAP_KEY})), MARKS_PREFIX)
        if marks:
            self._register_marks_aliases(samples, marks[0])

        subjects = self._sample(SUBJECTS, tenant_id, self._config.subject_sample_limit)
        for subject in subjects:
            samples.offer_tree(build_tree(subject), SUBJECT_PREFIX)
        if subjects:
            _register_aliases(samples, subjects[0], SUBJECT_ALIASES)

        return samples

    def _register_marks_aliases(self, samples: FieldSamples, first_mark: Mapping[str, Any]) -> None:
        holders = first_mark.get(HOLDER_MAP_KEY)
        if isinstance(holders, Mapping) and holders:
            # The shape of one holder's entry stands in for every holder id.
            exemplar = next(iter(holders.values()))
            if isinstance(exemplar, Mapping):
                samples.offer_tree(build_tree(exemplar), HOLDER_ALIAS_PREFIX)
                for alias, source in HOLDER_ALIASES:
                    if source in exemplar:
                        samples.offer(alias, exemplar[source])
        _register_aliases(samples, first_mark, MARKS_ALIASES)

    def discover(self, tenant_id: str) -> list[FieldCatalogEntry]:
        """Return the labelled catalog, sorted by label; empty when the tenant has no data."""
        samples = self.collect_samples(tenant_id)
        entries = [build_entry(path, sample) for path, sample in samples.items()]
        entries.sort(key=lambda entry: entry.label.casefold())
        logger.info("Discovered %d fields for tenant %s", len(entries), tenant_id)
        return entries


def _register_aliases(samples: FieldSamples, document: Mapping[str, Any],
                      aliases: tuple[tuple[str, str], ...]) -> None:
    for alias, source in aliases:
        value = document.get(source)
        if value:
            samples.offer(alias, value)


def build_entry(path: str, sample: Any) -> FieldCatalogEntry:
    return FieldCatalogEntry(
        placeholder_key=path,
        db_field_path=path,
        label=derive_label(path),
        icon=suggest_icon(path),
        exists_in_db=True,
        data_type=infer_data_type(sample),
        default_value=stringify_sample(sample),
        description=f"Field from database: {path}",
    )
