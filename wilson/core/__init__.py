from wilson.core.constants import ToolName as ToolName
from wilson.core.events import (
    DoneEvent as DoneEvent,
    ErrorEvent as ErrorEvent,
    StreamEvent as StreamEvent,
    TextEvent as TextEvent,
    ToolCallStartedEvent as ToolCallStartedEvent,
    ToolResultEvent as ToolResultEvent,
    ToolsPendingBatchEvent as ToolsPendingBatchEvent,
    UsageEvent as UsageEvent,
)
from wilson.core.exceptions import (
    ConfigurationError as ConfigurationError,
    PathTraversalError as PathTraversalError,
    WilsonError as WilsonError,
)
from wilson.core.types import (
    PendingToolCall as PendingToolCall,
    ToolOutcome as ToolOutcome,
    ToolResult as ToolResult,
)
