"""Backend response stream handling.

Exports:
    StreamCursor: Pull-based cursor over normalized events.
    CancellationToken: Cooperative cancellation signal.
    WireEventNormalizer: Translator from wire records to StreamEvents.
    split_lines: Chunk-to-line splitter.
    parse_frame: Server-sent-event frame parser.
"""

from wilson.stream.cursor import CancellationToken as CancellationToken, StreamCursor as StreamCursor
from wilson.stream.frames import parse_frame as parse_frame, split_lines as split_lines
from wilson.stream.normalizer import WireEventNormalizer as WireEventNormalizer
