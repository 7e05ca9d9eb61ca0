"""
Redundant field detection.

Clusters a template's fields into candidate groups of likely duplicates
(the same logical input placed on several pages). The output is advisory:
the catalog is never modified here.

Matching rules, checked for every pair (anchor, candidate) of the same kind:
1. Normalized names are identical
2. Name similarity reaches the name threshold
3. Positions are close and names are at least loosely similar
4. Weighted name/position score reaches the combined threshold
"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field

from pdfforms.core.config import get_settings
from pdfforms.services.identity.catalog import FieldSpec
from pdfforms.services.identity.scorer import name_similarity, position_proximity

logger = logging.getLogger(__name__)

EXACT_NAME = "exact_name"
FUZZY_NAME = "fuzzy_name"
POSITION_PROXIMITY = "position_proximity"
COMBINED = "combined"

MATCH_REASONS = (EXACT_NAME, FUZZY_NAME, POSITION_PROXIMITY, COMBINED)


@dataclass
class DetectionOptions:
    """Tunable thresholds for redundant field detection."""
    name_similarity_threshold: float = 0.85
    position_proximity_threshold: float = 0.70
    exact_match_only: bool = False
    fuzzy_name_floor: float = 0.60
    name_weight: float = 0.7
    position_weight: float = 0.3
    combined_threshold: float = 0.75
    page_width: float = 595.0
    page_height: float = 842.0
    include_grouped: bool = False

    @classmethod
    def from_settings(cls, **overrides) -> "DetectionOptions":
        """Build options from configured defaults, applying non-None overrides."""
        settings = get_settings()
        options = cls(
            name_similarity_threshold=settings.name_similarity_threshold,
            position_proximity_threshold=settings.position_proximity_threshold,
            fuzzy_name_floor=settings.fuzzy_name_floor,
            name_weight=settings.name_weight,
            position_weight=settings.position_weight,
            combined_threshold=settings.combined_threshold,
            page_width=settings.default_page_width,
            page_height=settings.default_page_height,
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(options, key, value)
        return options

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GroupMember:
    """A field inside a candidate group."""
    field: FieldSpec
    match_reason: str | None = None  # None for the anchor
    name_similarity: float = 1.0
    position_proximity: float = 1.0


@dataclass
class RedundantGroup:
    """Candidate cluster of likely-duplicate fields."""
    group_id: str
    suggested_name: str
    confidence: float
    match_reason: str
    members: list[GroupMember] = field(default_factory=list)

    @property
    def fields(self) -> list[FieldSpec]:
        return [m.field for m in self.members]

    @property
    def field_ids(self) -> list[str]:
        return [m.field.id for m in self.members]

    @property
    def committed_group_ids(self) -> list[str]:
        """Ids of committed groups some members already belong to."""
        return sorted({m.field.group_id for m in self.members if m.field.group_id})


@dataclass
class MergeSuggestion:
    """Operator-facing advice for one candidate group."""
    group_id: str
    suggestion: str
    confidence: float
    auto_mergeable: bool


def _same_raw_name(a: FieldSpec, b: FieldSpec) -> bool:
    return a.name.strip().casefold() == b.name.strip().casefold()


def suggest_canonical_name(fields: list[FieldSpec]) -> str:
    """Most frequent raw name; ties go to the shortest, then lexicographic."""
    counts = Counter(f.name for f in fields)
    return min(counts, key=lambda name: (-counts[name], len(name), name))


class RedundancyDetector:
    """Greedy single-pass clustering of a field catalog."""

    def __init__(self, options: DetectionOptions | None = None):
        self.options = options or DetectionOptions()

    def _match(self, anchor: FieldSpec, candidate: FieldSpec) -> GroupMember | None:
        """Return a member record if candidate duplicates anchor, else None."""
        opts = self.options

        # Never group incompatible input types, even under identical names
        if anchor.kind != candidate.kind:
            return None

        name_sim = name_similarity(anchor.name, candidate.name)
        pos_sim = position_proximity(
            (anchor.x, anchor.y),
            (candidate.x, candidate.y),
            opts.page_width,
            opts.page_height,
        )

        if anchor.normalized_name == candidate.normalized_name:
            reason = EXACT_NAME if _same_raw_name(anchor, candidate) else FUZZY_NAME
            return GroupMember(candidate, reason, name_sim, pos_sim)

        if opts.exact_match_only:
            return None

        combined = opts.name_weight * name_sim + opts.position_weight * pos_sim

        if name_sim >= opts.name_similarity_threshold:
            reason = FUZZY_NAME
        elif (
            pos_sim >= opts.position_proximity_threshold
            and name_sim >= opts.fuzzy_name_floor
        ):
            reason = POSITION_PROXIMITY
        elif combined >= opts.combined_threshold:
            reason = COMBINED
        else:
            return None

        return GroupMember(candidate, reason, name_sim, pos_sim)

    def _group_reason(self, matches: list[GroupMember], confidence: float) -> str:
        if all(m.match_reason == EXACT_NAME for m in matches):
            return EXACT_NAME
        if confidence >= self.options.name_similarity_threshold:
            return FUZZY_NAME
        return COMBINED

    def detect(self, fields: list[FieldSpec]) -> list[RedundantGroup]:
        """Cluster fields into candidate groups, highest confidence first."""
        candidates = [
            f for f in fields
            if self.options.include_grouped or f.group_id is None
        ]
        ordered = sorted(candidates, key=lambda f: (f.page, f.normalized_name, f.id))

        processed: set[str] = set()
        groups: list[tuple[int, RedundantGroup]] = []

        for index, anchor in enumerate(ordered):
            if anchor.id in processed:
                continue

            matches = []
            for candidate in ordered[index + 1:]:
                if candidate.id in processed:
                    continue
                member = self._match(anchor, candidate)
                if member is not None:
                    matches.append(member)

            if not matches:
                continue

            members = [GroupMember(anchor)] + matches
            processed.update(m.field.id for m in members)

            confidence = sum(m.name_similarity for m in matches) / len(matches)
            confidence = min(max(confidence, 0.0), 1.0)

            group = RedundantGroup(
                group_id=f"candidate_{anchor.id}",
                suggested_name=suggest_canonical_name([m.field for m in members]),
                confidence=confidence,
                match_reason=self._group_reason(matches, confidence),
                members=members,
            )
            groups.append((index, group))

        groups.sort(key=lambda item: (-item[1].confidence, item[0]))
        result = [group for _, group in groups]

        logger.debug(
            "Detected %d redundant groups among %d fields", len(result), len(candidates)
        )
        return result


def suggest_merges(
    groups: list[RedundantGroup],
    auto_merge_confidence: float = 0.95,
) -> list[MergeSuggestion]:
    """Attach a human-readable recommendation to each candidate group."""
    suggestions = []
    for group in groups:
        percent = round(group.confidence * 100)
        pages = len({f.page for f in group.fields})
        auto_mergeable = False
        committed = group.committed_group_ids

        if committed:
            # merge rejects grouped fields; only add-to-group can absorb them
            text = (
                f"Some fields already belong to group {', '.join(committed)}. "
                "Add the others to that group instead of merging."
            )
        elif group.match_reason == EXACT_NAME and group.confidence >= auto_merge_confidence:
            text = (
                f"Fields have identical names across {pages} pages. "
                "Safe to merge automatically."
            )
            auto_mergeable = True
        elif group.match_reason == FUZZY_NAME and group.confidence >= 0.9:
            text = (
                f"Fields have very similar names ({percent}% match). "
                "Review and merge if they represent the same data."
            )
        elif group.match_reason == COMBINED:
            text = "Fields detected as similar based on name and position. Verify before merging."
        else:
            text = f"Potential match with {percent}% confidence. Manual review recommended."

        suggestions.append(
            MergeSuggestion(
                group_id=group.group_id,
                suggestion=text,
                confidence=group.confidence,
                auto_mergeable=auto_mergeable,
            )
        )
    return suggestions
