"""
Record codec for the commit log.

Each record is one Markdown list item in the backing file:

    - **<hash>** [<tap>] (pending) <alias>: "<message>" _(<createdAt>)_

Approved records are the same line without the ``(pending) `` marker. Lines
written before the approval workflow existed never carry the marker and so
always decode as approved. The format has no escaping: an alias containing
``: "`` or a message containing ``" _(`` cannot be read back faithfully.
"""

import re
import uuid
from dataclasses import dataclass, asdict, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

LIST_MARKER = "- **"
PENDING_MARKER = "(pending) "

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"

HASH_LENGTH = 7
MAX_MESSAGE_LENGTH = 140

DEFAULT_TAP = "craft"
DEFAULT_ALIAS = "anónimo"
BEER_STYLES = [
    "ipa",
    "stout",
    "porter",
    "lager",
    "pils",
    "tripel",
    "weiss",
    "neipa",
    "saison",
    "choco-mint",
]

DEFAULT_HEADER = "# Last Commit Log\n\nRegistro de commits cerveceros.\n\n"

# Sequences that shift field boundaries when the line is decoded
DELIMITERS = (': "', '" _(', ")_", PENDING_MARKER)

LINE_PATTERN = re.compile(
    r'^- \*\*(?P<hash>[A-Za-z0-9]+)\*\* '
    r'\[(?P<tap>[^\]]+)\] '
    r'(?P<pending>\(pending\) )?'
    r'(?P<alias>.+?): "'
    r'(?P<message>.+?)" _\('
    r'(?P<created_at>.+?)\)_'
)

_PENDING_PREFIX = re.compile(r'^(- \*\*[A-Za-z0-9]+\*\* \[[^\]]+\] )\(pending\) ')


@dataclass
class CommitRecord:
    hash: str
    tap: str
    alias: str
    message: str
    created_at: str
    status: str = STATUS_PENDING

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    @property
    def caption(self) -> str:
        """Short display line used by the submission response."""
        return f"🍺 {self.tap} // {self.alias}: {self.message}"

    def approved(self) -> "CommitRecord":
        """Copy of this record in the approved state."""
        return replace(self, status=STATUS_APPROVED)

    def to_dict(self) -> Dict:
        """Convert to the JSON shape served by the API."""
        data = asdict(self)
        data["createdAt"] = data.pop("created_at")
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "CommitRecord":
        """Create from the API JSON shape."""
        data = dict(data)
        if "createdAt" in data:
            data["created_at"] = data.pop("createdAt")
        data.pop("caption", None)
        return cls(**data)


def new_hash() -> str:
    """Provisional identifier, replaced by the store's change id when one is returned."""
    return uuid.uuid4().hex[:HASH_LENGTH]


def now_timestamp() -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_tap(beer: Optional[str]) -> str:
    """Map a requested beer style onto the known taps, case-insensitively."""
    candidate = str(beer or "").strip().lower()
    return candidate if candidate in BEER_STYLES else DEFAULT_TAP


def contains_delimiters(text: str) -> bool:
    """True when text would break decoding of the line it is written into."""
    return any(d in text for d in DELIMITERS)


def encode_line(record: CommitRecord) -> str:
    """Serialize a record to its Markdown line (without trailing newline)."""
    marker = PENDING_MARKER if record.is_pending else ""
    return (
        f'- **{record.hash}** [{record.tap}] {marker}'
        f'{record.alias}: "{record.message}" _({record.created_at})_'
    )


def decode_line(line: str) -> Optional[CommitRecord]:
    """Parse one line. Returns None for anything that is not a record."""
    match = LINE_PATTERN.match(line)
    if not match:
        return None

    return CommitRecord(
        hash=match.group("hash"),
        tap=match.group("tap"),
        alias=match.group("alias"),
        message=match.group("message"),
        created_at=match.group("created_at"),
        status=STATUS_PENDING if match.group("pending") else STATUS_APPROVED,
    )


def decode_log(content: str) -> List[CommitRecord]:
    """Decode every record in a file, newest (last appended) first."""
    records = []
    for line in content.split("\n"):
        if not line.startswith(LIST_MARKER):
            continue
        record = decode_line(line)
        if record is not None:
            records.append(record)
    records.reverse()
    return records


def append_line(content: str, line: str) -> str:
    """Append a record line, keeping the previous last line intact."""
    if content and not content.endswith("\n"):
        content += "\n"
    return content + line + "\n"


def find_pending_line(content: str, commit_hash: str) -> Optional[Tuple[int, str]]:
    """Locate the first pending line whose hash is exactly commit_hash."""
    for index, line in enumerate(content.split("\n")):
        if not line.startswith(LIST_MARKER):
            continue
        record = decode_line(line)
        if record is not None and record.is_pending and record.hash == commit_hash:
            return index, line
    return None


def approve_line(line: str) -> str:
    """Drop the pending marker from a pending line; every other byte is kept."""
    approved, count = _PENDING_PREFIX.subn(r"\1", line, count=1)
    if count == 0:
        raise ValueError("line is not a pending record")
    return approved


def replace_line(content: str, index: int, new_line: str) -> str:
    """Swap the line at index, leaving the rest of the content byte-identical."""
    lines = content.split("\n")
    lines[index] = new_line
    return "\n".join(lines)
