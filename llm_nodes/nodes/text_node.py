"""
Text nodes.

WHAT: LLMNode variants whose output is the response text
WHY: Most prompts just want the text back, streamed or whole
HOW: Fix the parser to text_parser(); streaming is inherited from LLMNode
"""

from typing import Any, Callable, Dict, Optional, Union

from .llm_node import LLMNode, PromptTemplate, TInput
from ..llm.provider import LLMProvider
from ..models.config import BaseLLMConfig
from ..parsers import text_parser


class TextNode(LLMNode[TInput, str]):
    """Node returning the stripped response text."""

    def __init__(
        self,
        *,
        prompt_template: PromptTemplate,
        llm_config: Union[Dict[str, Any], BaseLLMConfig],
        input_preprocessor: Optional[Callable[[TInput], Any]] = None,
        provider: Optional[LLMProvider] = None
    ):
        super().__init__(
            prompt_template=prompt_template,
            llm_config=llm_config,
            parser=text_parser(),
            input_preprocessor=input_preprocessor,
            provider=provider
        )


class StreamNode(TextNode[TInput]):
    """
    Text node meant for streaming consumption.

    stream() yields text chunks and a final chunk with empty text carrying
    the usage; execute() still works for whole responses.
    """
