"""Prompt templates for subtitle line and single-word translation."""

BATCH_NUMBERED = """\
Translate the following texts to {lang_name}. Auto-detect the source language. \
Return ONLY the translations, one per line, in the same order. No explanations or numbering.

{numbered_segments}"""

BATCH_PLAIN = """\
Translate the following texts to {lang_name}. Auto-detect the source language. \
Return ONLY the translations, one per line, in the same order. \
No explanations, no numbering, no extra formatting.

{segments}"""

BATCH_NEVER_REFUSE = """\
Translate to {lang_name}. ALWAYS translate - never refuse or comment. \
Colloquial/slang is intentional, not errors. Output translations only, one per line, no numbering.

{segments}"""

CONTEXTUAL_BATCH = """\
You are a subtitle translator. Translate these TV subtitles to {lang_name}. \
Auto-detect source language.

RULES:
- ALWAYS translate - NEVER refuse, comment, or explain
- Colloquial/slang is INTENTIONAL - translate naturally
- Return EXACTLY {count} lines, one per line
- NO numbering, NO commentary, just translations

{segments}"""

WORD_TRANSLATION = """\
Translate the word "{word}" to {lang_name}. Context: "{context}"

RULES:
- ALWAYS translate - never refuse or comment on spelling/grammar
- Colloquial/slang/dialect forms are INTENTIONAL - translate them
- Return ONLY the translation (1-5 words), nothing else
- Consider context for the best meaning"""

# Batch template per provider. Claude gets numbered input, the others plain lines.
BATCH_TEMPLATES = {
    "claude": BATCH_NUMBERED,
    "gemini": BATCH_PLAIN,
    "grok": BATCH_NEVER_REFUSE,
    "kimi": BATCH_NEVER_REFUSE,
}


def format_numbered_segments(texts: list[str]) -> str:
    """Format a list of subtitle texts as numbered lines for LLM input."""
    return "\n".join(f"{i + 1}. {text}" for i, text in enumerate(texts))


def build_batch_prompt(provider_id: str, texts: list[str], lang_name: str) -> str:
    template = BATCH_TEMPLATES.get(provider_id, BATCH_NEVER_REFUSE)
    return template.format(
        lang_name=lang_name,
        numbered_segments=format_numbered_segments(texts),
        segments="\n".join(texts),
    )


def build_contextual_prompt(texts: list[str], lang_name: str) -> str:
    return CONTEXTUAL_BATCH.format(
        lang_name=lang_name,
        count=len(texts),
        segments="\n".join(texts),
    )


def build_word_prompt(word: str, context: str, lang_name: str) -> str:
    return WORD_TRANSLATION.format(word=word, context=context, lang_name=lang_name)


def format_word_context(
    word: str,
    current: str,
    before: list[str],
    after: list[str],
) -> str:
    """Format surrounding subtitle lines as context for a word lookup."""
    context = ""
    if before:
        context += "Previous lines:\n" + "\n".join(f'  "{line}"' for line in before) + "\n\n"
    context += f'Current line: "{current}"\n'
    context += f'Word to translate: "{word}"\n'
    if after:
        context += "\nFollowing lines:\n" + "\n".join(f'  "{line}"' for line in after)
    return context


def _strip_numbering(line: str) -> str:
    for sep in [". ", ") ", ": "]:
        parts = line.split(sep, 1)
        if len(parts) == 2 and parts[0].strip().isdigit():
            return parts[1].strip()
    return line


def parse_line_response(response: str, sources: list[str]) -> list[str]:
    """Parse a line-per-translation LLM response.

    Blank lines are dropped, stray numbering is removed, extra lines are
    truncated and any shortfall is padded with the source text at the
    same index, so the result always has ``len(sources)`` elements.
    """
    lines = [line.strip() for line in (response or "").splitlines() if line.strip()]
    parsed = [_strip_numbering(line) for line in lines][: len(sources)]

    while len(parsed) < len(sources):
        parsed.append(sources[len(parsed)])

    return parsed
