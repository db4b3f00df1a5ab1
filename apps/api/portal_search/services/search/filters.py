"""FilterSet parsing, in-memory post-filters and result sorting."""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional, TypeVar

from portal_search.core import FILTER_ALL, SORT_CREATED_AT, SORT_TITLE
from portal_search.schemas import SearchResult

if TYPE_CHECKING:
    from .store import DocumentRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Canonical filter field -> accepted request keys
_FILTER_ALIASES: dict[str, tuple[str, ...]] = {
    "category_id": ("category_id", "categoryId"),
    "category": ("category", "category_name", "categoryName"),
    "subcategory_id": ("subcategory_id", "subcategoryId"),
    "subcategory": ("subcategory", "subcategory_name", "subcategoryName"),
    "role_type": ("role_type", "roleType", "role"),
    "tag_ids": ("tag_id", "tagId", "tag_ids", "tagIds", "tags"),
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _is_applied(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        v = value.strip()
        return bool(v) and v.lower() != FILTER_ALL
    if isinstance(value, (list, tuple, set)):
        return any(_is_applied(v) for v in value)
    return True


def _as_str(value: Any) -> Optional[str]:
    return str(value).strip() if _is_applied(value) else None


def _as_ids(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple, set)):
        items = value
    else:
        items = [value]
    return tuple(sorted({str(v).strip() for v in items if _is_applied(v)}))


@dataclass(frozen=True)
class FilterSet:
    """Applied filters only; "all", empty and missing values are dropped on parse."""
    category_id: Optional[str] = None
    category: Optional[str] = None
    subcategory_id: Optional[str] = None
    subcategory: Optional[str] = None
    role_type: Optional[str] = None
    tag_ids: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "FilterSet":
        raw = raw or {}
        values: dict[str, Any] = {}
        for name, keys in _FILTER_ALIASES.items():
            for key in keys:
                if key in raw and _is_applied(raw[key]):
                    values[name] = raw[key]
                    break
        unknown = set(raw) - {k for keys in _FILTER_ALIASES.values() for k in keys}
        if unknown:
            logger.debug("Ignoring unsupported filter keys: %s", sorted(unknown))
        return cls(
            category_id=_as_str(values.get("category_id")),
            category=_as_str(values.get("category")),
            subcategory_id=_as_str(values.get("subcategory_id")),
            subcategory=_as_str(values.get("subcategory")),
            role_type=_as_str(values.get("role_type")),
            tag_ids=_as_ids(values.get("tag_ids")),
        )

    @property
    def is_active(self) -> bool:
        return bool(self.as_dict())

    def as_dict(self) -> dict[str, Any]:
        return {k: (list(v) if isinstance(v, tuple) else v) for k, v in asdict(self).items() if v}


def is_visible_to_role(record: "DocumentRecord", role: str) -> bool:
    """Visibility rows decide when present; otherwise the document's own role attribute."""
    if record.visibility:
        for conditions in record.visibility:
            conditions = conditions or {}
            if role in (conditions.get("roleTypes") or []):
                return True
            if conditions.get("role_type") == role:
                return True
        return False
    return record.role_type == role


def apply_filters(
    items: Iterable[T],
    filters: FilterSet,
    record: Callable[[T], "DocumentRecord"] = lambda item: item,
) -> list[T]:
    """Narrow items by each applied filter in turn (AND across filter kinds)."""
    out = list(items)
    if filters.category_id:
        out = [i for i in out if record(i).category_id == filters.category_id]
    if filters.category:
        out = [i for i in out if record(i).category_name == filters.category]
    if filters.subcategory_id:
        out = [i for i in out if record(i).subcategory_id == filters.subcategory_id]
    if filters.subcategory:
        out = [i for i in out if record(i).subcategory_name == filters.subcategory]
    if filters.role_type:
        out = [i for i in out if is_visible_to_role(record(i), filters.role_type)]
    if filters.tag_ids:
        wanted = set(filters.tag_ids)
        out = [i for i in out if wanted.intersection(record(i).tag_ids)]
    return out


def _timestamp(value: Optional[datetime]) -> float:
    if value is None:
        return _EPOCH.timestamp()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def title_sort_key(title: str) -> tuple[str, str]:
    """Case-insensitive order; on ties lowercase sorts before uppercase."""
    return (title.casefold(), title.swapcase())


def sort_results(results: list[SearchResult], sort_by: str) -> list[SearchResult]:
    if sort_by == SORT_CREATED_AT:
        return sorted(results, key=lambda r: _timestamp(r.created_at), reverse=True)
    if sort_by == SORT_TITLE:
        return sorted(results, key=lambda r: title_sort_key(r.title or ""))
    return sorted(results, key=lambda r: r.similarity, reverse=True)
