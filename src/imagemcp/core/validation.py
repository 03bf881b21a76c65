"""
Text validation for prompts.

The upstream model is driven with English prompts; text in CJK or other
non-Latin scripts is rejected so the calling client can translate first.
"""

import re

from imagemcp.utils.exceptions import ValidationError

# Hangul Jamo, Kana, Hangul compatibility Jamo, CJK ideographs, Hangul syllables
_CJK_RE = re.compile(
    "[\u1100-\u11ff\u3040-\u30ff\u3130-\u318f"
    "\u4e00-\u9fff\ua960-\ua97f\uac00-\ud7af]"
)
# Hebrew, Arabic, Thai, Myanmar, Ethiopic
_NON_LATIN_RE = re.compile("[\u0590-\u06ff\u0e00-\u0e7f\u1000-\u109f\u1200-\u137f]")

TRANSLATE_SUGGESTION = "Use your LLM to translate the prompt to English, then try again."


def validate_english_only(text: str | None, field_name: str = "text") -> str:
    """
    Validate that text is non-empty and written in English.

    Args:
        text: Text to validate
        field_name: Field name used in the error message

    Returns:
        The text unchanged

    Raises:
        ValidationError: EMPTY_TEXT or NON_ENGLISH_TEXT
    """
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(
            f"{field_name} cannot be empty.",
            field=field_name,
            suggestion="Please provide a descriptive English prompt.",
            code="EMPTY_TEXT",
        )
    if _CJK_RE.search(text) or _NON_LATIN_RE.search(text):
        raise ValidationError(
            f"{field_name} only accepts English text. "
            "Please translate your prompt to English first.",
            field=field_name,
            suggestion=TRANSLATE_SUGGESTION,
            code="NON_ENGLISH_TEXT",
        )
    return text


def validate_english_only_list(texts: list[str], field_name: str = "text") -> list[str]:
    """Validate every entry; errors name the offending index, e.g. prompts[2]."""
    if not isinstance(texts, list):
        raise ValidationError(
            f"{field_name} must be a list.",
            field=field_name,
            suggestion="Provide a list of English text strings.",
            code="INVALID_TYPE",
        )
    for index, text in enumerate(texts):
        validate_english_only(text, f"{field_name}[{index}]")
    return texts
