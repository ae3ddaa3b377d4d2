"""Intent routing and prompt assembly."""

from communicator.core.agent.intents import Intent, classify_intent, extract_day_window
from communicator.core.agent.processor import Processor, ProcessorReply

__all__ = [
    "Intent",
    "Processor",
    "ProcessorReply",
    "classify_intent",
    "extract_day_window",
]
