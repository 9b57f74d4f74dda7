"""
Gap Classifier

Pure function over two keyword sets:

    result = classify(your_keywords, their_keywords)

1. Each side is indexed by normalized keyword text. A keyword repeated
   within one side is an upstream data-quality defect: the first record is
   kept and a warning is recorded (never an exception).
2. Theirs only -> MISSING entry with an opportunity score.
3. Both        -> OVERLAP entry with delta = your_position - their_position.
4. Yours only  -> not materialized; only counted in the KPI totals.

Runs in time linear in the combined input size and performs no I/O.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from .models import ClassificationResult, GapEntry, GapKind, KeywordRecord
from .scoring import DEFAULT_WEIGHTS, OpportunityWeights, opportunity_score

logger = logging.getLogger(__name__)


def index_keywords(
    records: Sequence[KeywordRecord],
    side: str,
) -> Tuple[Dict[str, KeywordRecord], List[str]]:
    """
    Map normalized keyword -> record, first occurrence wins.

    Returns:
        (index, warnings)
    """
    index: Dict[str, KeywordRecord] = {}
    duplicates: Dict[str, int] = {}
    warnings: List[str] = []
    blank = 0

    for record in records:
        key = record.normalized
        if not key:
            blank += 1
            continue
        if key in index:
            duplicates[key] = duplicates.get(key, 1) + 1
            continue
        index[key] = record

    for key, count in duplicates.items():
        message = (
            f"Duplicate keyword '{key}' in {side} keyword set "
            f"({count} records collapsed into one)"
        )
        logger.warning(message)
        warnings.append(message)

    if blank:
        message = f"Skipped {blank} record(s) with an empty keyword in {side} keyword set"
        logger.warning(message)
        warnings.append(message)

    return index, warnings


def _position_delta(your_position, their_position):
    if your_position is None or their_position is None:
        return None
    return your_position - their_position


def _pick(primary, fallback):
    return primary if primary is not None else fallback


def classify(
    your_keywords: Sequence[KeywordRecord],
    their_keywords: Sequence[KeywordRecord],
    weights: OpportunityWeights = DEFAULT_WEIGHTS,
) -> ClassificationResult:
    """
    Partition the competitor's keywords into missing and overlap entries.

    Args:
        your_keywords: Ranked keywords for your domain
        their_keywords: Ranked keywords for the competitor domain
        weights: Opportunity score weights (missing keywords only)

    Returns:
        ClassificationResult with unordered entries, warnings and the raw
        input sizes (passed through for the KPI aggregator)
    """
    yours, your_warnings = index_keywords(your_keywords, "your")
    theirs, their_warnings = index_keywords(their_keywords, "competitor")

    entries: List[GapEntry] = []

    for key, theirs_record in theirs.items():
        yours_record = yours.get(key)

        if yours_record is None:
            entries.append(GapEntry(
                keyword=theirs_record.keyword,
                kind=GapKind.MISSING,
                your_position=None,
                their_position=theirs_record.position,
                delta=None,
                opportunity_score=opportunity_score(
                    theirs_record.search_volume,
                    theirs_record.position,
                    theirs_record.difficulty,
                    weights,
                ),
                search_volume=theirs_record.search_volume,
                difficulty=theirs_record.difficulty,
                cpc=theirs_record.cpc,
                serp_features=theirs_record.serp_features,
            ))
        else:
            entries.append(GapEntry(
                keyword=theirs_record.keyword,
                kind=GapKind.OVERLAP,
                your_position=yours_record.position,
                their_position=theirs_record.position,
                delta=_position_delta(yours_record.position, theirs_record.position),
                opportunity_score=None,
                search_volume=_pick(theirs_record.search_volume, yours_record.search_volume),
                difficulty=_pick(theirs_record.difficulty, yours_record.difficulty),
                cpc=_pick(theirs_record.cpc, yours_record.cpc),
                serp_features=theirs_record.serp_features | yours_record.serp_features,
            ))

    logger.debug(
        f"Classified {len(theirs)} competitor keywords against {len(yours)} of yours: "
        f"{len(entries)} entries"
    )

    return ClassificationResult(
        entries=entries,
        warnings=your_warnings + their_warnings,
        your_total=len(your_keywords),
        their_total=len(their_keywords),
        your_distinct=len(yours),
    )
