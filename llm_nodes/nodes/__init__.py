"""Executable nodes and pipeline composition."""

from .llm_node import LLMNode
from .pipeline import Pipeline
from .structured_output_node import StructuredOutputNode
from .text_node import StreamNode, TextNode

__all__ = [
    "LLMNode",
    "Pipeline",
    "StreamNode",
    "StructuredOutputNode",
    "TextNode",
]
