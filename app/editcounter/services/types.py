from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum

from editcounter.exceptions import InvalidFilterError

NAMESPACE_ALL = "all"
REDIRECTS_ALL = "all"
REDIRECTS_ONLY = "onlyredirects"
REDIRECTS_NONE = "noredirects"
REDIRECT_FILTERS = (REDIRECTS_ALL, REDIRECTS_ONLY, REDIRECTS_NONE)

MW_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class UserIdentity:
    """A resolved editor: a registered account or an anonymous (IP) editor."""

    username: str
    user_id: int | None = None
    local_groups: tuple[str, ...] = ()
    global_groups: tuple[str, ...] = ()

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def scope(self) -> dict:
        return {"username": self.username, "user_id": self.user_id}


def _to_timestamp(value: date | datetime | None, *, end_of_day: bool) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime(MW_TIMESTAMP_FORMAT)
    moment = datetime.combine(value, time.max if end_of_day else time.min)
    return moment.strftime(MW_TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class StatsFilters:
    """Validated namespace, redirect and date filters for one request."""

    namespace: int | str = NAMESPACE_ALL
    redirects: str = REDIRECTS_ALL
    start: date | datetime | None = None
    end: date | datetime | None = None

    def __post_init__(self):
        if self.namespace != NAMESPACE_ALL and (
            not isinstance(self.namespace, int)
            or isinstance(self.namespace, bool)
            or self.namespace < 0
        ):
            raise InvalidFilterError(f"Invalid namespace: {self.namespace!r}")
        if self.redirects not in REDIRECT_FILTERS:
            raise InvalidFilterError(f"Invalid redirect filter: {self.redirects!r}")
        for value in (self.start, self.end):
            if value is not None and not isinstance(value, date):
                raise InvalidFilterError(f"Invalid date: {value!r}")
        start, end = self.start_timestamp, self.end_timestamp
        if start and end and start > end:
            raise InvalidFilterError("Start date is after end date")

    @classmethod
    def build(
        cls,
        namespace: int | str | None = NAMESPACE_ALL,
        redirects: str | None = REDIRECTS_ALL,
        start: date | datetime | str | None = None,
        end: date | datetime | str | None = None,
    ) -> StatsFilters:
        """Build filters from loosely typed (e.g. query string) values."""
        return cls(
            namespace=parse_namespace(namespace),
            redirects=redirects or REDIRECTS_ALL,
            start=parse_date(start),
            end=parse_date(end),
        )

    @property
    def all_namespaces(self) -> bool:
        return self.namespace == NAMESPACE_ALL

    @property
    def start_timestamp(self) -> str | None:
        return _to_timestamp(self.start, end_of_day=False)

    @property
    def end_timestamp(self) -> str | None:
        return _to_timestamp(self.end, end_of_day=True)

    def scope(self) -> dict:
        return {
            "namespace": self.namespace,
            "redirects": self.redirects,
            "start": self.start_timestamp,
            "end": self.end_timestamp,
        }


def parse_namespace(value: int | str | None) -> int | str:
    if value is None or value == NAMESPACE_ALL:
        return NAMESPACE_ALL
    if isinstance(value, bool):
        raise InvalidFilterError(f"Invalid namespace: {value!r}")
    if isinstance(value, int):
        namespace = value
    else:
        text = str(value).strip()
        if not text.isdecimal():
            raise InvalidFilterError(f"Invalid namespace: {value!r}")
        namespace = int(text)
    if namespace < 0:
        raise InvalidFilterError(f"Invalid namespace: {value!r}")
    return namespace


def parse_date(value: date | datetime | str | None) -> date | datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidFilterError(f"Invalid date: {value!r}") from None


@dataclass(frozen=True)
class CountRow:
    """One ``(discriminator, count)`` row of a grouped-count query."""

    source: str
    value: int


@dataclass(frozen=True)
class SourceRow:
    """A discriminated row whose value is a count or a label."""

    source: str
    value: int | str | None


@dataclass(frozen=True)
class UserRow:
    user_id: int
    groups: tuple[str, ...] = ()


@dataclass(frozen=True)
class RevisionRow:
    """Edits by one user in one namespace and month, live or archived."""

    namespace: int
    month: str
    deleted: bool
    edits: int


@dataclass(frozen=True)
class TimestampRow:
    first: datetime | None
    last: datetime | None


@dataclass(frozen=True)
class PageRow:
    """A page created by the user, from the live or the archived history."""

    namespace: int
    title: str
    deleted: bool
    is_redirect: bool
    timestamp: datetime
    page_len: int
    rev_len: int
    rev_id: int
    assessment: str | None = None
    importance: str | None = None


@dataclass(frozen=True)
class LogRow:
    log_type: str
    log_action: str
    count: int

    @property
    def key(self) -> str:
        return f"{self.log_type}-{self.log_action}"


class RevisionBucket(str, Enum):
    LIVE = "live"
    DELETED = "deleted"
    MINOR = "minor"
    SMALL = "small"
    LARGE = "large"
    WITH_COMMENTS = "with_comments"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class PageBucket(str, Enum):
    EDITED_LIVE = "edited-live"
    EDITED_DELETED = "edited-deleted"
    CREATED_LIVE = "created-live"
    CREATED_DELETED = "created-deleted"
    MOVED = "moved"


def _reduce_buckets(target, buckets: type[Enum], rows: Iterable[CountRow]):
    for row in rows:
        attribute = buckets(row.source).name.lower()
        setattr(target, attribute, getattr(target, attribute) + int(row.value or 0))
    return target


@dataclass
class RevisionCounters:
    """Revision counts for one user; every bucket is always present."""

    live: int = 0
    deleted: int = 0
    minor: int = 0
    small: int = 0
    large: int = 0
    with_comments: int = 0
    day: int = 0
    week: int = 0
    month: int = 0
    year: int = 0

    @classmethod
    def from_rows(cls, rows: Iterable[CountRow]) -> RevisionCounters:
        return _reduce_buckets(cls(), RevisionBucket, rows)

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class PageCounters:
    edited_live: int = 0
    edited_deleted: int = 0
    created_live: int = 0
    created_deleted: int = 0
    moved: int = 0

    @classmethod
    def from_rows(cls, rows: Iterable[CountRow]) -> PageCounters:
        return _reduce_buckets(cls(), PageBucket, rows)

    def as_dict(self) -> dict[str, int]:
        return {bucket.value: getattr(self, bucket.name.lower()) for bucket in PageBucket}


@dataclass
class LogCounters:
    """Counts keyed by ``"<log_type>-<log_action>"``; missing keys read as zero."""

    counts: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, rows: Iterable[LogRow]) -> LogCounters:
        counts: dict[str, int] = {}
        for row in rows:
            counts[row.key] = counts.get(row.key, 0) + row.count
        return cls(counts=dict(sorted(counts.items())))

    def __getitem__(self, key: str) -> int:
        return self.counts.get(key, 0)

    def get(self, key: str) -> int:
        return self.counts.get(key, 0)

    def total(self, *keys: str) -> int:
        return sum(self.get(key) for key in keys)

    def as_dict(self) -> dict[str, int]:
        return dict(self.counts)


@dataclass(frozen=True)
class RevisionDates:
    first: datetime | None = None
    last: datetime | None = None


@dataclass
class PageGroup:
    """Per-namespace page totals; ``deleted`` is counted within ``total``."""

    total: int = 0
    redirects: int = 0
    deleted: int = 0


@dataclass(frozen=True)
class PageSummary:
    namespace: int
    title: str
    deleted: bool
    is_redirect: bool
    timestamp: datetime
    human_time: str
    page_len: int
    rev_len: int
    rev_id: int
    assessment: str | None = None
    importance: str | None = None


@dataclass
class PagesReport:
    pages: dict[int, dict[str, list[PageSummary]]]
    counts: dict[int, PageGroup]
    total: int
    redirect_total: int
    deleted_total: int
    summary_columns: list[str]
    has_page_assessments: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class NamespaceMonthCounts:
    """Edits per namespace and month (``YYYY-MM``), live and deleted together."""

    months: dict[int, dict[str, int]] = field(default_factory=dict)
    deleted: dict[int, int] = field(default_factory=dict)

    @property
    def namespace_totals(self) -> dict[int, int]:
        return {ns: sum(months.values()) for ns, months in self.months.items()}

    @property
    def year_totals(self) -> dict[int, dict[str, int]]:
        years: dict[int, dict[str, int]] = {}
        for namespace, months in self.months.items():
            per_year = years.setdefault(namespace, {})
            for month, count in months.items():
                year = month[:4]
                per_year[year] = per_year.get(year, 0) + count
        return years

    @property
    def total(self) -> int:
        return sum(self.namespace_totals.values())

    def as_dict(self) -> dict:
        return {
            "namespace_totals": self.namespace_totals,
            "months": self.months,
            "years": self.year_totals,
            "deleted": self.deleted,
        }
