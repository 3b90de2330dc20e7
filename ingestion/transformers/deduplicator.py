"""
Build unique occupation and metro drafts from scored rows.

First-seen-wins: the first row carrying a source code decides that
entity's title (and therefore its slug) for the run. Salary facts are keyed
by (occ_code, area_code); a repeated pair keeps its last occurrence.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Tuple
from schemas.normalized import (
    MetroDraft,
    OccupationDraft,
    SalaryFactDraft,
    ScoredRecord,
)
from ingestion.transformers.slugs import extract_state_abbr, generate_slug
from core.exceptions import SlugCollisionError
import logging

logger = logging.getLogger(__name__)


class EntitySet:
    """Deduplicated drafts ready for the loader"""

    def __init__(self):
        self.occupations: Dict[str, OccupationDraft] = {}
        self.metros: Dict[str, MetroDraft] = {}
        self.facts: Dict[Tuple[str, str], SalaryFactDraft] = {}
        self.duplicate_facts = 0

    @property
    def fact_list(self) -> List[SalaryFactDraft]:
        return list(self.facts.values())

    @property
    def indexable_count(self) -> int:
        return sum(1 for f in self.facts.values() if f.is_indexable)

    def summary(self) -> Dict[str, int]:
        return {
            "occupations": len(self.occupations),
            "metros": len(self.metros),
            "facts": len(self.facts),
            "indexable_facts": self.indexable_count,
            "duplicate_facts": self.duplicate_facts,
        }


class EntityDeduplicator:
    """Consume scored records and materialize entity drafts"""

    def build(self, scored_records: Iterable[ScoredRecord]) -> EntitySet:
        entities = EntitySet()

        for scored in scored_records:
            record = scored.record

            if record.occ_code not in entities.occupations:
                entities.occupations[record.occ_code] = OccupationDraft(
                    occ_code=record.occ_code,
                    occ_title=record.occ_title,
                    occ_group=record.occ_group,
                    slug=generate_slug(record.occ_title),
                )

            if record.area_code not in entities.metros:
                entities.metros[record.area_code] = MetroDraft(
                    area_code=record.area_code,
                    area_title=record.area_title,
                    slug=generate_slug(record.area_title),
                    state_abbr=extract_state_abbr(record.area_title),
                )

            key = (record.occ_code, record.area_code)
            if key in entities.facts:
                entities.duplicate_facts += 1
                # Pop so the replacement lands in last-seen position
                entities.facts.pop(key)

            entities.facts[key] = SalaryFactDraft(
                occ_code=record.occ_code,
                area_code=record.area_code,
                tot_emp=int(record.tot_emp) if record.tot_emp is not None else None,
                h_mean=record.h_mean,
                a_mean=record.a_mean,
                a_median=record.a_median,
                a_pct10=record.a_pct10,
                a_pct25=record.a_pct25,
                a_pct75=record.a_pct75,
                a_pct90=record.a_pct90,
                dqs=scored.dqs,
                is_indexable=scored.is_indexable,
            )

        if entities.duplicate_facts:
            logger.warning(
                f"{entities.duplicate_facts} repeated (occupation, area) rows; last occurrence kept"
            )

        logger.info(
            f"Found {len(entities.occupations)} unique occupations, "
            f"{len(entities.metros)} unique metro areas, "
            f"{len(entities.facts)} salary records"
        )
        return entities


def find_slug_collisions(drafts: Iterable, code_attr: str) -> Dict[str, List[str]]:
    """Map each slug claimed by more than one source code to those codes"""
    codes_by_slug: Dict[str, List[str]] = defaultdict(list)
    for draft in drafts:
        codes_by_slug[draft.slug].append(getattr(draft, code_attr))
    return {slug: codes for slug, codes in codes_by_slug.items() if len(codes) > 1}


def check_slug_collisions(entities: EntitySet) -> None:
    """
    Fail the run before any write if two entities would share a slug.

    Raises:
        SlugCollisionError: with the colliding slugs and source codes
    """
    for entity, drafts, code_attr in (
        ("occupation", entities.occupations.values(), "occ_code"),
        ("metro", entities.metros.values(), "area_code"),
    ):
        collisions = find_slug_collisions(drafts, code_attr)
        if collisions:
            raise SlugCollisionError(
                f"{len(collisions)} {entity} slug(s) shared by distinct source codes",
                context={"entity": entity, "collisions": collisions},
            )
