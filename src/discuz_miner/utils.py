"""
Utility functions for the Discuz Forums Miner.

JSON serialization (orjson) and atomic file writes.
"""

from pathlib import Path
from typing import Any, Union

import orjson


def to_json_bytes(data: Any) -> bytes:
    """
    Serialize ``data`` as indented UTF-8 JSON with sorted keys.

    orjson writes non-ASCII text (titles, post bodies) unescaped.
    """
    return orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS)


def write_json(path: Union[str, Path], data: Any) -> Path:
    """
    Write ``data`` to ``path`` atomically.

    The JSON goes to a sibling ``.tmp`` file first and is then renamed over
    the target, so an interrupted crawl never leaves a half-written file.

    Example:
        write_json("output/listing_1.json", listing.to_dict())
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_bytes(to_json_bytes(data))
    tmp.replace(path)
    return path
