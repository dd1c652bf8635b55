"""
WBI request signing.

Signing flow:
  1. Concatenate img_key + sub_key (32 chars each) and reorder the 64 chars
     through MIXIN_KEY_ENC_TAB; the first 32 chars are the mixin key.
  2. Add ``wts`` (unix seconds) to the params, strip ``!'()*`` from every value,
     sort by key and join as an encodeURIComponent-style query string.
  3. ``w_rid = md5(query + mixin_key)``.

The sorted/filtered form is only hashed. The returned mapping keeps the
caller's params untouched and appends ``w_rid`` and ``wts``.

References:
  - https://socialsisteryi.github.io/bilibili-API-collect/docs/misc/sign/wbi.html
"""

import re
import time
from collections.abc import Mapping
from hashlib import md5
from typing import Any
from urllib.parse import quote

# fmt: off
MIXIN_KEY_ENC_TAB = [
    46, 47, 18, 2, 53, 8, 23, 32, 15, 50, 10, 31, 58, 3, 45, 35, 27, 43, 5, 49,
    33, 9, 42, 19, 29, 28, 14, 39, 12, 38, 41, 13, 37, 48, 7, 16, 24, 55, 40,
    61, 26, 17, 0, 1, 60, 51, 30, 4, 22, 25, 54, 21, 56, 59, 6, 63, 57, 62, 11,
    36, 20, 34, 44, 52
]
# fmt: on

# Characters encodeURIComponent leaves untouched besides alphanumerics and "-_."
URI_COMPONENT_SAFE = "!~*'()"

FILTERED_CHARS_RE = re.compile(r"[!'()*]")


def get_mixin_key(img_key: str, sub_key: str) -> str:
    orig = img_key + sub_key
    if len(orig) != len(MIXIN_KEY_ENC_TAB):
        raise ValueError(f"WBI key fragments must be 64 chars in total, got {len(orig)}")
    return "".join(orig[i] for i in MIXIN_KEY_ENC_TAB)[:32]


def encode_uri_component(value: str) -> str:
    return quote(value, safe=URI_COMPONENT_SAFE)


def encode_query(params: Mapping[str, Any]) -> str:
    """Join params as ``key=value`` pairs in iteration order."""
    return "&".join(
        f"{encode_uri_component(str(k))}={encode_uri_component(str(v))}" for k, v in params.items()
    )


def build_sign_query(params: Mapping[str, Any], wts: int) -> str:
    with_wts = {**params, "wts": wts}
    filtered = {k: FILTERED_CHARS_RE.sub("", str(v)) for k, v in with_wts.items()}
    return encode_query(dict(sorted(filtered.items())))


def calc_w_rid(params: Mapping[str, Any], wts: int, mixin_key: str) -> str:
    query = build_sign_query(params, wts)
    return md5((query + mixin_key).encode("utf-8")).hexdigest()


def sign_params(
    params: Mapping[str, Any],
    img_key: str,
    sub_key: str,
    wts: int | None = None,
) -> dict[str, Any]:
    """
    Sign a parameter mapping.

    Args:
        params: Original query params, left unmodified
        img_key: Image key fragment issued by the nav endpoint
        sub_key: Sub key fragment issued by the nav endpoint
        wts: Timestamp in unix seconds, defaults to now

    Returns:
        A new dict: the original params followed by ``w_rid`` and ``wts``
    """
    if wts is None:
        wts = int(time.time())
    w_rid = calc_w_rid(params, wts, get_mixin_key(img_key, sub_key))
    return {**params, "w_rid": w_rid, "wts": wts}
