# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Line splitting and server-sent-event frame parsing."""
import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any, Final, TypeAlias


DATA_PREFIX: Final = "data:"
DONE_MARKER: Final = "[DONE]"


class _DoneSentinel:
    """Marker returned by parse_frame for the ``[DONE]`` terminator."""

    def __repr__(self) -> str:
        return "DONE"


DONE: Final = _DoneSentinel()

Frame: TypeAlias = dict[str, Any] | _DoneSentinel


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number in frame: {name}")


async def split_lines(chunks: AsyncIterable[bytes | str]) -> AsyncIterator[str]:
    """Split a chunked response body into lines.

    Bytes are decoded incrementally, so a multi-byte UTF-8 character split
    across two chunks is reassembled. ``\\r\\n`` endings are normalized. A
    trailing line without a terminator is yielded at end of input.

    Args:
        chunks: Response body chunks.

    Yields:
        Lines without their terminators.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    async for chunk in chunks:
        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        *lines, buffer = buffer.split("\n")
        for line in lines:
            yield line.removesuffix("\r")

    buffer += decoder.decode(b"", final=True)
    if buffer:
        yield buffer.removesuffix("\r")


def parse_frame(line: str) -> Frame | None:
    """Parse one line of the event stream.

    Args:
        line: A single line from split_lines.

    Returns:
        DONE for the terminator, the decoded record for a JSON object frame,
        or None for anything to skip (blank lines, comments, non-data lines,
        invalid JSON, NaN or Infinity, JSON that is not an object).
    """
    stripped = line.strip()
    if not stripped or stripped.startswith(":"):
        return None
    if not stripped.startswith(DATA_PREFIX):
        return None

    payload = stripped[len(DATA_PREFIX):].strip()
    if payload == DONE_MARKER:
        return DONE

    try:
        record = json.loads(payload, parse_constant=_reject_constant)
    except ValueError:
        return None
    if not isinstance(record, dict):
        return None
    return record
