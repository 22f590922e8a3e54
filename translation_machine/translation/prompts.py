"""
Translation Prompts

Style presets, the per-chunk user message, the stricter corrective prompt
used after a suspect result, and a sanity check for custom system prompts.
"""

import re
from dataclasses import dataclass
from typing import Dict, List

from translation_machine.language_codes import display_name

DEFAULT_STYLE = "formal"
CUSTOM_STYLE = "custom"

_PRESET_HEAD = (
    "You are a professional translator. Translate the following text from "
    "{source_language_name} to {target_language_name}. "
)
_PRESET_TAIL = (
    "Provide ONLY the {target_language_name} translation, do not include the original text. "
    "The output must be in {target_language_name}."
)

STYLE_PRESETS: Dict[str, str] = {
    "formal": _PRESET_HEAD + (
        "Use a formal, professional tone. Maintain the original structure and formatting. "
    ) + _PRESET_TAIL,
    "conversational": _PRESET_HEAD + (
        "Use a natural, conversational tone that sounds friendly and approachable. "
    ) + _PRESET_TAIL,
    "academic": _PRESET_HEAD + (
        "Use an academic, scholarly tone with precise terminology and formal structure. "
    ) + _PRESET_TAIL,
    "creative": _PRESET_HEAD + (
        "Use creative flair, adapting idioms and expressions to sound natural in "
        "{target_language_name}. "
    ) + _PRESET_TAIL,
    "technical": _PRESET_HEAD + (
        "Maintain technical accuracy and specialized terminology. "
    ) + _PRESET_TAIL,
}

USER_TEMPLATE = "TRANSLATE TO {target_upper}: {text}"

CORRECTIVE_SYSTEM_TEMPLATE = """CRITICAL INSTRUCTION: You MUST translate the following text to {target_upper} ONLY.
DO NOT respond in {source_language_name} or any other language.
Your response must be 100% in {target_language_name}.
You are translating FROM {source_language_name} TO {target_language_name}.
{target_upper} OUTPUT REQUIRED. NO EXCEPTIONS.

Translate this text to {target_language_name}:"""

CORRECTIVE_USER_TEMPLATE = """TRANSLATE TO {target_upper} (NOT {source_language_name}): {text}

IMPORTANT: Your response must be in {target_language_name} only. Do not include any {source_language_name} text in your response."""


@dataclass(frozen=True)
class PromptConfig:
    """System prompt, user message template and sampling temperature for one request."""

    system_prompt: str
    user_template: str
    temperature: float = 0.1

    def user_message(self, text: str) -> str:
        return self.user_template.replace("{text}", text)


def _names(source_language: str, target_language: str) -> Dict[str, str]:
    target_name = display_name(target_language)
    return {
        "source_language_name": display_name(source_language),
        "target_language_name": target_name,
        "target_upper": target_name.upper(),
    }


def build_system_prompt(style: str, source_language: str, target_language: str, custom_prompt: str = "") -> str:
    """Resolve a style preset (or the custom prompt) into a system prompt."""
    if style == CUSTOM_STYLE:
        return custom_prompt.strip()
    template = STYLE_PRESETS.get(style, STYLE_PRESETS[DEFAULT_STYLE])
    return template.format(**_names(source_language, target_language))


def build_prompt(system_prompt: str, source_language: str, target_language: str,
                 temperature: float = 0.1) -> PromptConfig:
    """Prompt for the regular per-chunk request."""
    names = _names(source_language, target_language)
    user_template = USER_TEMPLATE.replace("{target_upper}", names["target_upper"])
    return PromptConfig(system_prompt=system_prompt, user_template=user_template, temperature=temperature)


def build_corrective_prompt(source_language: str, target_language: str) -> PromptConfig:
    """Stricter prompt for the single re-request after a suspect translation."""
    names = _names(source_language, target_language)
    system_prompt = CORRECTIVE_SYSTEM_TEMPLATE.format(**names)
    user_template = CORRECTIVE_USER_TEMPLATE
    for key, value in names.items():
        user_template = user_template.replace("{" + key + "}", value)
    return PromptConfig(system_prompt=system_prompt, user_template=user_template, temperature=0.0)


def check_system_prompt(prompt: str, source_language: str, target_language: str) -> List[str]:
    """
    Look for common mistakes in a system prompt.

    Returns:
        A list of human-readable issues; empty when the prompt looks fine.
    """
    issues = []
    lowered = prompt.lower()
    target_name = display_name(target_language).lower()
    source_name = display_name(source_language).lower()

    if target_name not in lowered:
        issues.append(f'Prompt does not mention "{display_name(target_language)}" as target language')
    if "translat" not in lowered:
        issues.append("Prompt does not contain a translation instruction")
    if source_name and source_name != target_name and re.search(
        rf"\b(?:to|into|in)\s+{re.escape(source_name)}\b", lowered
    ):
        issues.append(f"Prompt asks for {display_name(source_language)} output (should only be the source)")
    if "only" not in lowered or "not include" not in lowered:
        issues.append("Prompt may allow the original text in the response")

    return issues
