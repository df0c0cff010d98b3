"""
Prompt aspect pipeline.

Components:
- PromptContext / BuiltPrompt: builder input and output
- apply_aspects / create_prompt_builder: aspect composition
- jurisdiction, agent, profile, conversation, additional and disclaimer aspects
- AspectPromptPipeline: the pipeline the compliance engine calls
"""

from regintel.prompts.aspects import (
    ENGINE_PROMPT_ASPECTS,
    AspectPromptPipeline,
    BuiltPrompt,
    PromptAspect,
    PromptBuilder,
    PromptContext,
    PromptPipeline,
    additional_context_aspect,
    agent_context_aspect,
    apply_aspects,
    base_prompt_builder,
    conversation_context_aspect,
    create_prompt_builder,
    disclaimer_aspect,
    jurisdiction_aspect,
    profile_context_aspect,
)

__all__ = [
    "ENGINE_PROMPT_ASPECTS",
    "AspectPromptPipeline",
    "BuiltPrompt",
    "PromptAspect",
    "PromptBuilder",
    "PromptContext",
    "PromptPipeline",
    "additional_context_aspect",
    "agent_context_aspect",
    "apply_aspects",
    "base_prompt_builder",
    "conversation_context_aspect",
    "create_prompt_builder",
    "disclaimer_aspect",
    "jurisdiction_aspect",
    "profile_context_aspect",
]
