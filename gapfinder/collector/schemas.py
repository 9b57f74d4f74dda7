"""
DataForSEO response schemas

Typed views of the ranked_keywords payload. Validation happens here, at the
boundary; items are converted to KeywordRecord immediately.

Only the fields we use are declared; everything else is ignored. The API
returns null for absent nested objects, so nested models are Optional.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from gapfinder.gap.models import KeywordRecord

logger = logging.getLogger(__name__)


# Task status codes
STATUS_OK = 20000
STATUS_TASK_CREATED = 20100
# "No Search Results" - a valid, empty answer
NO_DATA_STATUS_CODES = (40102,)
# "Rate-limit per minute exceeded", "Too many requests" - retry later
RATE_LIMIT_STATUS_CODES = (40202, 40209)


class KeywordInfo(BaseModel):
    search_volume: Optional[int] = None
    cpc: Optional[float] = None
    competition: Optional[float] = None


class KeywordProperties(BaseModel):
    keyword_difficulty: Optional[int] = None


class SerpInfo(BaseModel):
    serp_item_types: Optional[List[str]] = None


class KeywordData(BaseModel):
    keyword: str
    keyword_info: Optional[KeywordInfo] = None
    keyword_properties: Optional[KeywordProperties] = None
    serp_info: Optional[SerpInfo] = None


class SerpItem(BaseModel):
    type: Optional[str] = None
    rank_group: Optional[int] = None
    rank_absolute: Optional[int] = None
    url: Optional[str] = None


class RankedSerpElement(BaseModel):
    serp_item: Optional[SerpItem] = None


class RankedKeywordItem(BaseModel):
    """One item of dataforseo_labs/google/ranked_keywords."""
    keyword_data: KeywordData
    ranked_serp_element: Optional[RankedSerpElement] = None

    def to_record(self) -> KeywordRecord:
        info = self.keyword_data.keyword_info or KeywordInfo()
        props = self.keyword_data.keyword_properties or KeywordProperties()
        serp_info = self.keyword_data.serp_info or SerpInfo()
        serp_item = (self.ranked_serp_element.serp_item if self.ranked_serp_element else None) or SerpItem()

        # rank_group is the organic rank; 0 means "not ranking"
        position = serp_item.rank_group or serp_item.rank_absolute or None

        return KeywordRecord(
            keyword=self.keyword_data.keyword,
            position=position,
            search_volume=info.search_volume,
            cpc=info.cpc,
            difficulty=props.keyword_difficulty,
            serp_features=frozenset(serp_info.serp_item_types or ()),
        )


class TaskResult(BaseModel):
    target: Optional[str] = None
    total_count: Optional[int] = None
    items_count: Optional[int] = None
    items: Optional[List[Dict[str, Any]]] = None


class Task(BaseModel):
    id: Optional[str] = None
    status_code: int
    status_message: str = ""
    cost: Optional[float] = None
    result: Optional[List[Optional[TaskResult]]] = None

    @property
    def is_no_data(self) -> bool:
        return self.status_code in NO_DATA_STATUS_CODES


class ApiResponse(BaseModel):
    """Top-level DataForSEO envelope."""
    status_code: int
    status_message: str = ""
    cost: Optional[float] = None
    tasks: Optional[List[Task]] = None

    def first_task(self) -> Optional[Task]:
        return self.tasks[0] if self.tasks else None


def parse_ranked_keywords(payload: Dict[str, Any]) -> List[KeywordRecord]:
    """
    Convert a ranked_keywords response into KeywordRecords.

    Items that fail validation or carry no keyword are skipped and logged;
    a no-data task yields an empty list.
    """
    response = ApiResponse.model_validate(payload)
    task = response.first_task()
    if task is None or task.is_no_data or not task.result:
        return []

    records: List[KeywordRecord] = []
    skipped = 0

    for result in task.result:
        if result is None:
            continue
        for raw_item in result.items or []:
            try:
                item = RankedKeywordItem.model_validate(raw_item)
            except ValidationError as e:
                skipped += 1
                logger.debug(f"Skipping malformed ranked keyword item: {e}")
                continue

            record = item.to_record()
            if not record.keyword.strip():
                skipped += 1
                continue
            records.append(record)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed ranked keyword item(s)")

    return records
