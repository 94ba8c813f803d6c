"""Language-model gateway for Tickertape.

Provides an OpenAI-compatible HTTP client and the pluggable LanguageModel
protocol the agent loop depends on. Failures surface as
:class:`tickertape.exceptions.ModelError` subclasses.
"""

from tickertape.llm.client import OpenAIClient
from tickertape.llm.protocols import LanguageModel, ModelMessage, ToolCall, ToolSpec

__all__ = [
    "OpenAIClient",
    "LanguageModel",
    "ModelMessage",
    "ToolCall",
    "ToolSpec",
]
