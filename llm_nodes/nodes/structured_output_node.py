"""
Structured output node.

WHAT: LLMNode whose output is a validated pydantic model
WHY: Callers want typed objects, not JSON strings
HOW: Append the JSON schema to the prompt and validate with structured_parser()
"""

import json
from typing import Any, Callable, Dict, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel

from .llm_node import LLMNode, PromptTemplate, TInput
from ..llm.provider import LLMProvider
from ..models.config import BaseLLMConfig
from ..parsers import structured_parser

TModel = TypeVar("TModel", bound=BaseModel)


class StructuredOutputNode(LLMNode[TInput, TModel], Generic[TInput, TModel]):
    """Node that asks for JSON matching a schema and returns the parsed model."""

    def __init__(
        self,
        *,
        prompt_template: PromptTemplate,
        llm_config: Union[Dict[str, Any], BaseLLMConfig],
        schema: Type[TModel],
        input_preprocessor: Optional[Callable[[TInput], Any]] = None,
        provider: Optional[LLMProvider] = None,
        include_schema_in_prompt: bool = True
    ):
        super().__init__(
            prompt_template=prompt_template,
            llm_config=llm_config,
            parser=structured_parser(schema),
            input_preprocessor=input_preprocessor,
            provider=provider
        )
        self.schema = schema
        self.include_schema_in_prompt = include_schema_in_prompt

    def get_prompt(self, input: TInput) -> str:
        prompt = super().get_prompt(input)
        if not self.include_schema_in_prompt:
            return prompt
        schema_json = json.dumps(self.schema.model_json_schema(), indent=2)
        return (
            f"{prompt}\n\n"
            f"Respond only with a JSON object matching this JSON schema:\n{schema_json}"
        )
