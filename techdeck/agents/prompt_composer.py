"""
Prompt Composer.

Assembles every prompt the pipeline sends with the same layout, so the model
always sees context, instructions and the required output format in the same
delimited blocks:

    You are the <persona> mentor (<style>, <tone>).     (only with a persona)

    <task description>

    --- CONTEXT ---
    ## <section title>
    ...
    --- END CONTEXT ---

    --- INSTRUCTIONS ---
    1. ...
    --- END INSTRUCTIONS ---

    --- OUTPUT FORMAT ---
    <format description>
    --- END OUTPUT FORMAT ---

Pure functions: no network or file access.
"""

from typing import Iterable, Optional

from techdeck.models.prompt import ContextSection, Persona, PromptContext, RenderHint


def render_persona(persona: Persona) -> str:
    """Persona preamble placed before the task description."""
    preamble = f"You are the {persona.name} mentor ({persona.style}, {persona.tone}).\n"
    if persona.persona_prompt:
        preamble += f"{persona.persona_prompt.strip()}\n"
    return preamble + "\n"


def render_section(section: ContextSection) -> str:
    """Render one context section according to its hint."""
    rendered = f"\n## {section.title}\n"

    if section.render_hint == RenderHint.NOTES:
        marker = section.title.upper()
        rendered += (
            f"--- START {marker} ---\n{section.content}\n--- END {marker} ---\n"
        )
    elif section.render_hint == RenderHint.CODE:
        rendered += f"```{section.language}\n{section.content}\n```\n"
    else:
        rendered += f"{section.content}\n"

    return rendered


def compose(context: PromptContext) -> str:
    """Build the final prompt string from a PromptContext."""
    prompt = render_persona(context.persona) if context.persona else ""

    if context.task:
        prompt += f"{context.task}\n"

    if context.sections:
        prompt += "\n--- CONTEXT ---"
        for section in context.sections:
            prompt += render_section(section)
        prompt += "--- END CONTEXT ---\n"

    prompt += "\n--- INSTRUCTIONS ---"
    for index, instruction in enumerate(context.instructions, start=1):
        prompt += f"\n{index}. {instruction}"
    prompt += "\n--- END INSTRUCTIONS ---\n"

    prompt += "\n--- OUTPUT FORMAT ---"
    prompt += f"\n{context.output_format}"
    prompt += "\n--- END OUTPUT FORMAT ---"

    return prompt


def build_prompt(
    persona: Optional[Persona],
    task: str,
    sections: Iterable[ContextSection],
    instructions: Iterable[str],
    output_format: str
) -> str:
    """
    Convenience wrapper: validate the pieces into a PromptContext and compose.

    Raises:
        pydantic.ValidationError: If instructions are empty or the output
            format is blank.
    """
    context = PromptContext(
        persona=persona,
        task=task,
        sections=tuple(sections),
        instructions=tuple(instructions),
        output_format=output_format
    )
    return compose(context)
