"""
Prompt aspect pipeline.

An aspect wraps the next builder: it calls next(ctx) first and then appends
its own section to the returned system prompt. Aspects are composed so that
the first one in the list is the outermost.
"""

from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Protocol, Sequence

from regintel.constants import NON_ADVICE_DISCLAIMER
from regintel.schemas.schemas import ResolvedNode, UserProfile


@dataclass
class PromptContext:
    base_prompt: str
    jurisdictions: list[str] | None = None
    agent_id: str | None = None
    agent_description: str | None = None
    profile: UserProfile | None = None
    include_disclaimer: bool = False
    conversation_context_summary: str | None = None
    conversation_context_nodes: list[ResolvedNode] = field(default_factory=list)
    additional_context: list[str] = field(default_factory=list)


@dataclass
class BuiltPrompt:
    system_prompt: str
    context: PromptContext


PromptBuilder = Callable[[PromptContext], Awaitable[BuiltPrompt]]
PromptAspect = Callable[[PromptContext, PromptBuilder], Awaitable[BuiltPrompt]]

PERSONA_DESCRIPTIONS = {
    "single-director": "a single-director company owner",
    "self-employed": "a self-employed individual",
    "investor": "an investor",
    "paye-employee": "a PAYE employee",
    "advisor": "a professional advisor",
}


def _append(result: BuiltPrompt, section: str) -> BuiltPrompt:
    return replace(result, system_prompt=f"{result.system_prompt}\n\n{section}")


async def base_prompt_builder(ctx: PromptContext) -> BuiltPrompt:
    return BuiltPrompt(system_prompt=ctx.base_prompt, context=ctx)


def apply_aspects(base: PromptBuilder, aspects: Sequence[PromptAspect]) -> PromptBuilder:
    """Compose aspects around `base`; aspects[0] runs outermost."""
    builder = base
    for aspect in reversed(aspects):
        builder = _bind(aspect, builder)
    return builder


def _bind(aspect: PromptAspect, next_builder: PromptBuilder) -> PromptBuilder:
    async def bound(ctx: PromptContext) -> BuiltPrompt:
        return await aspect(ctx, next_builder)

    return bound


def create_prompt_builder(aspects: Sequence[PromptAspect] = ()) -> PromptBuilder:
    return apply_aspects(base_prompt_builder, aspects)


# ------------------------------------------------------------------
# Aspects
# ------------------------------------------------------------------

async def jurisdiction_aspect(ctx: PromptContext, next_builder: PromptBuilder) -> BuiltPrompt:
    result = await next_builder(ctx)
    jurisdictions = ctx.jurisdictions or (ctx.profile.jurisdictions if ctx.profile else None)
    if not jurisdictions:
        return result

    if len(jurisdictions) == 1:
        text = f"The user is primarily interested in rules from: {jurisdictions[0]}"
    else:
        text = (
            f"The user is interested in rules from multiple jurisdictions: {', '.join(jurisdictions)}. "
            "Pay attention to cross-border interactions and coordination rules."
        )
    return _append(result, f"Jurisdiction Context: {text}")


async def agent_context_aspect(ctx: PromptContext, next_builder: PromptBuilder) -> BuiltPrompt:
    result = await next_builder(ctx)
    if not ctx.agent_id and not ctx.agent_description:
        return result
    return _append(result, f"Agent Context: {ctx.agent_description or f'Agent: {ctx.agent_id}'}")


async def profile_context_aspect(ctx: PromptContext, next_builder: PromptBuilder) -> BuiltPrompt:
    result = await next_builder(ctx)
    if ctx.profile is None:
        return result
    persona = PERSONA_DESCRIPTIONS.get(ctx.profile.persona_type, ctx.profile.persona_type)
    return _append(result, f"User Profile: The user is {persona}.")


async def conversation_context_aspect(ctx: PromptContext, next_builder: PromptBuilder) -> BuiltPrompt:
    result = await next_builder(ctx)
    summary = (ctx.conversation_context_summary or "").strip()
    if summary:
        result = _append(result, f"Conversation Context: {summary}")
    if ctx.conversation_context_nodes:
        concepts = "; ".join(
            f"{node.label} ({node.type})" if node.type else node.label
            for node in ctx.conversation_context_nodes
        )
        result = _append(result, f"Active graph concepts: {concepts}")
    return result


async def additional_context_aspect(ctx: PromptContext, next_builder: PromptBuilder) -> BuiltPrompt:
    result = await next_builder(ctx)
    if not ctx.additional_context:
        return result
    return _append(result, "\n\n".join(ctx.additional_context))


async def disclaimer_aspect(ctx: PromptContext, next_builder: PromptBuilder) -> BuiltPrompt:
    result = await next_builder(ctx)
    if not ctx.include_disclaimer:
        return result
    # Base prompts that already frame the answer as research are left alone
    if "RESEARCH TOOL" in result.system_prompt or "not a legal" in result.system_prompt:
        return result
    return _append(result, f"IMPORTANT: {NON_ADVICE_DISCLAIMER}")


ENGINE_PROMPT_ASPECTS: tuple[PromptAspect, ...] = (
    jurisdiction_aspect,
    agent_context_aspect,
    profile_context_aspect,
    conversation_context_aspect,
    disclaimer_aspect,
)


# ------------------------------------------------------------------
# Pipeline used by the engine
# ------------------------------------------------------------------

class PromptPipeline(Protocol):
    async def build(
        self,
        base_prompt: str,
        *,
        agent_id: str,
        include_disclaimer: bool,
        jurisdictions: list[str] | None = None,
        profile: UserProfile | None = None,
        conversation_context_summary: str | None = None,
        conversation_context_nodes: list[ResolvedNode] | None = None,
    ) -> BuiltPrompt:
        ...


class AspectPromptPipeline:
    """PromptPipeline built from a list of aspects."""

    def __init__(self, aspects: Sequence[PromptAspect] = ENGINE_PROMPT_ASPECTS):
        self._builder = create_prompt_builder(aspects)

    async def build(
        self,
        base_prompt: str,
        *,
        agent_id: str,
        include_disclaimer: bool,
        jurisdictions: list[str] | None = None,
        profile: UserProfile | None = None,
        conversation_context_summary: str | None = None,
        conversation_context_nodes: list[ResolvedNode] | None = None,
    ) -> BuiltPrompt:
        return await self._builder(
            PromptContext(
                base_prompt=base_prompt,
                jurisdictions=jurisdictions,
                agent_id=agent_id,
                profile=profile,
                include_disclaimer=include_disclaimer,
                conversation_context_summary=conversation_context_summary,
                conversation_context_nodes=list(conversation_context_nodes or []),
            )
        )
