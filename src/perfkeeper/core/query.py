"""Query descriptors translated into store key patterns."""

import re
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Literal

from perfkeeper.core.codec import DELIMITER, END
from perfkeeper.core.models import DATE_FORMAT, RECORD_TYPES, SCHEMA, RecordKind

Direction = Literal["asc", "desc"]

_NON_FILTERS = {"on", "text", "sort", "direction"}

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def escape_glob(value: object) -> str:
    """Backslash-escape the characters Redis MATCH treats as wildcards."""
    return _GLOB_SPECIAL.sub(r"\\\1", str(value))


@dataclass(frozen=True)
class Query:
    """Optional filters plus a sort order for a report.

    Filters that are not key fields of the queried kind are ignored when
    building the pattern.
    """

    on: date | None = None
    status: int | str | None = None
    controller: str | None = None
    action: str | None = None
    format: str | None = None
    method: str | None = None
    path: str | None = None
    request_id: str | None = None
    tag_name: str | None = None
    namespace_name: str | None = None
    queue: str | None = None
    worker: str | None = None
    jid: str | None = None
    name: str | None = None
    text: str | None = None
    sort: str = "datetimei"
    direction: Direction = "desc"

    def for_day(self, day: date) -> "Query":
        """Return a copy of this query restricted to one day."""
        return replace(self, on=day)

    def _filters(self) -> dict[str, object]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in _NON_FILTERS and getattr(self, f.name) not in (None, "")
        }

    def pattern(self, kind: RecordKind) -> str:
        """Translate the filters into one glob pattern for a record kind.

        Pieces follow the kind's key-field order so the glob can match;
        free text is matched anywhere after them. Each filter piece ends
        with the delimiter so the next field name can follow it directly.
        """
        filters = self._filters()
        pieces = []
        for name in RECORD_TYPES[kind].key_fields:
            if name == "datetime" and self.on is not None:
                day = self.on.strftime(DATE_FORMAT)
                pieces.append(f"datetime{DELIMITER}{day}")
            elif name in filters:
                pieces.append(f"{name}{DELIMITER}{escape_glob(filters[name])}{DELIMITER}")
        if self.text:
            pieces.append(escape_glob(self.text))
        body = "*".join([*pieces, ""])
        return f"{kind}{DELIMITER}*{body}{END}{DELIMITER}{SCHEMA}"
