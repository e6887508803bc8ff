"""
Pipeline composition.

WHAT: Sequential chain of two executable stages with combined usage reporting
WHY: Multi-step prompts need one entry point and one usage total
HOW: Await the first stage fully, feed its output to the second; sum the ledgers of distinct stages
"""

from typing import Any, Iterator

from ..models.usage import TotalTokenUsage, UsageRecord


class Pipeline:
    """
    first -> second, where each stage is anything with an async execute().

    Stages without usage accessors contribute nothing to the totals.
    Nesting pipelines does not change the aggregate, and a node that appears
    more than once (node.pipe(node)) is counted once, since its ledger
    already holds every call it made.
    """

    def __init__(self, first: Any, second: Any):
        self.first = first
        self.second = second

    async def execute(self, input: Any) -> Any:
        intermediate = await self.first.execute(input)
        return await self.second.execute(intermediate)

    def pipe(self, next_stage: Any) -> "Pipeline":
        return Pipeline(self, next_stage)

    def _leaf_stages(self) -> Iterator[Any]:
        for stage in (self.first, self.second):
            if isinstance(stage, Pipeline):
                yield from stage._leaf_stages()
            else:
                yield stage

    def _ledger_stages(self) -> list[Any]:
        stages = []
        seen = set()
        for stage in self._leaf_stages():
            if id(stage) not in seen:
                seen.add(id(stage))
                stages.append(stage)
        return stages

    def get_usage_records(self) -> list[UsageRecord]:
        records = []
        for stage in self._ledger_stages():
            if hasattr(stage, "get_usage_records"):
                records.extend(stage.get_usage_records())
        return records

    def get_total_token_usage(self) -> TotalTokenUsage:
        total = TotalTokenUsage()
        for stage in self._ledger_stages():
            if hasattr(stage, "get_total_token_usage"):
                usage = stage.get_total_token_usage()
                total = total + TotalTokenUsage(
                    input_tokens=usage.input_tokens,
                    output_tokens=usage.output_tokens
                )
        return total
