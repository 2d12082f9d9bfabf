from typing import NamedTuple


class PromptPair(NamedTuple):
    """A pair of system and user prompts for LLM translation."""
    system: str
    user: str


# ============================================================================
# SHARED PROMPT SECTIONS
# ============================================================================

MARKDOWN_RULES_SECTION = """CRITICAL RULES FOR CODE BLOCKS:
1. NEVER modify content inside ``` blocks
2. NEVER add language identifiers (json, python, etc.) unless in original
3. If original has ```\\n then output must have ```\\n (nothing after ```)
4. Keep commands, code, and paths EXACTLY as they are

CRITICAL RULES FOR TEXT:
1. If original text has NO ```, translated text must have NO ```
2. Normal text paragraphs must remain as normal text (never wrap in ```)
3. Lists (- items) must remain as lists with same indentation

EXAMPLE:
Original: ```\\nadk run --help\\n```
CORRECT: ```\\nadk run --help\\n```
WRONG: ```json\\nadk run --help\\n```"""

PLACEHOLDER_SECTION = """PROTECTED MARKERS:
Markers such as [CODEBLOCK1], [SIMPLETABLE1000] or [INDENTNUM4] stand for content that must not be translated.
Copy every marker EXACTLY as it appears, on its own line, in the same position."""

CLOSING_LINE = 'Preserve ALL formatting EXACTLY. Do not "improve" or change anything.'


# ============================================================================
# TRANSLATION PROMPT FUNCTIONS
# ============================================================================

def generate_translation_prompt(
    text: str,
    target_language: str,
    source_language: str = "",
    plain_text: bool = False,
    has_placeholders: bool = False
) -> PromptPair:
    """
    Generate the translation prompt for one chunk.

    Args:
        text: The text to translate
        target_language: Target language name
        source_language: Source language name (omitted from the prompt if empty)
        plain_text: If True, ask for a plain-text translation instead of Markdown
        has_placeholders: If True, include the protected marker instructions

    Returns:
        PromptPair: A named tuple with 'system' and 'user' prompts
    """
    sections = [f"Translate to {target_language}. MAINTAIN EXACT MARKDOWN FORMAT."]
    if not plain_text:
        sections.append(MARKDOWN_RULES_SECTION)
    if has_placeholders:
        sections.append(PLACEHOLDER_SECTION)
    sections.append(CLOSING_LINE)
    system_prompt = "\n\n".join(sections)

    if plain_text:
        source_part = f" from {source_language}" if source_language else ""
        user_prompt = f"""Translate the following text{source_part} into {target_language} as plain text.
Keep the meaning exact and phrase it naturally in {target_language}.

Original text:
{text}"""
    else:
        user_prompt = f"""Original text:
{text}"""

    return PromptPair(system=system_prompt.strip(), user=user_prompt.strip())
