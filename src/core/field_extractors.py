"""
Field Extractors for Marketplace Activity Records

Activity records come in several shapes: the same logical field may live at
the top level, under `extra`, `token`, `metadata` or `rarity`. Each logical
field (name, image, rarity rank) has an ordered list of extractors below;
the first one producing a non-empty value wins.

Upstream shape drift should be absorbed by editing these lists, not the
pipeline.
"""

import hashlib
import json
import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from config.constants import PRICE_FIELDS, MAGIC_EDEN_ITEM_URL


Record = Dict[str, Any]
Extractor = Callable[[Record], Any]


def dig(data: Any, *keys: str) -> Any:
    """Walk nested dict keys, returning None as soon as a level is not a dict."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _path(*keys: str) -> Extractor:
    def extract(record: Record) -> Any:
        return dig(record, *keys)
    extract.__name__ = 'path_' + '_'.join(keys)
    return extract


def _image_from_files(record: Record) -> Optional[str]:
    """token.properties.files[] entry with an image/* MIME type"""
    files = _path('token', 'properties', 'files')(record)
    if not isinstance(files, list):
        return None
    for entry in files:
        if not isinstance(entry, dict):
            continue
        mime = entry.get('type')
        if isinstance(mime, str) and mime.startswith('image/') and entry.get('uri'):
            return entry['uri']
    return None


def _paths(prefixes: Sequence[Tuple[str, ...]], leaves: Sequence[str]) -> List[Extractor]:
    return [_path(*prefix, leaf) for prefix in prefixes for leaf in leaves]


_TOP = ()
_LOCATIONS: Tuple[Tuple[str, ...], ...] = (_TOP, ('extra',), ('token',), ('metadata',))


NAME_EXTRACTORS: List[Extractor] = _paths(_LOCATIONS, ('name', 'title'))

IMAGE_EXTRACTORS: List[Extractor] = [
    _path('extra', 'img'),
    _path('token', 'image'),
    _path('img'),
    _path('image'),
    _path('extra', 'image'),
    _path('metadata', 'image'),
    _image_from_files,
]

RANK_EXTRACTORS: List[Extractor] = [
    _path('rarity', 'howrare', 'rank'),
    _path('extra', 'howrare_rank'),
    _path('extra', 'howrare', 'rank'),
    _path('extra', 'howrare'),
    _path('howrare_rank'),
    _path('howrare', 'rank'),
    _path('howrare'),
    _path('token', 'howrare_rank'),
    _path('token', 'howrare', 'rank'),
    _path('token', 'howrare'),
    _path('metadata', 'howrare_rank'),
    _path('metadata', 'howrare', 'rank'),
    _path('metadata', 'howrare'),
    _path('rarity', 'rank'),
]

# Token metadata endpoint (`/tokens/{mint}`) shapes
METADATA_IMAGE_EXTRACTORS: List[Extractor] = [_path('image'), _path('img')]


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, dict)) and not value:
        return False
    return True


def first_value(record: Any, extractors: Iterable[Extractor]) -> Any:
    """Run extractors in order and return the first non-empty result."""
    if not isinstance(record, dict):
        return None
    for extractor in extractors:
        value = extractor(record)
        if _is_present(value):
            return value
    return None


def extract_name(record: Record) -> Optional[str]:
    value = first_value(record, NAME_EXTRACTORS)
    return str(value) if isinstance(value, (str, int, float)) else None


def extract_image(record: Record) -> Optional[str]:
    value = first_value(record, IMAGE_EXTRACTORS)
    return value if isinstance(value, str) else None


def coerce_rank(value: Any) -> Optional[int]:
    """Positive integer rank, or None for anything else (dicts, bools, junk)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return int(number)


def extract_rank(record: Record) -> Optional[int]:
    """
    Inline rarity rank. Extractors whose value does not coerce to a positive
    integer (e.g. a `howrare` sub-object without `rank`) are passed over.
    """
    if not isinstance(record, dict):
        return None
    for extractor in RANK_EXTRACTORS:
        rank = coerce_rank(extractor(record))
        if rank is not None:
            return rank
    return None


def extract_token_id(record: Record) -> Optional[str]:
    mint = record.get('tokenMint') or record.get('mint')
    return str(mint) if mint else None


def compute_event_id(record: Record) -> str:
    """
    Stable, non-empty identity for an activity record.

    tokenMint, else the record's own id, else SHA-256 over the canonical JSON
    serialization (sorted keys).
    """
    mint = record.get('tokenMint')
    if mint:
        return str(mint)
    record_id = record.get('id')
    if record_id not in (None, ''):
        return str(record_id)
    canonical = json.dumps(record, sort_keys=True, separators=(',', ':'), default=str)
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()


def parse_price(record: Record) -> Optional[float]:
    """
    Price in SOL from the first present price field.

    A record with no price field at all is priced at 0. Returns None only
    when the first present field is not a finite number.
    """
    for key in PRICE_FIELDS:
        if key not in record or record[key] is None:
            continue
        value = record[key]
        if isinstance(value, bool):
            return None
        try:
            price = float(value)
        except (TypeError, ValueError):
            return None
        return price if math.isfinite(price) else None
    return 0.0


def build_link(record: Record) -> str:
    link = record.get('marketplaceLink') or record.get('listingURL')
    if link:
        return str(link)
    return f"{MAGIC_EDEN_ITEM_URL}/{record.get('tokenMint') or ''}"


def block_time(record: Record) -> int:
    value = record.get('blockTime')
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
