"""System-instruction assembly.

The active prompt template is followed by optional context blocks, each
in its own tag, in a fixed order: user profile, selected text,
clipboard, screen text. A block is included only when its toggle is on
and its source has text.
"""

from dataclasses import dataclass

from dictation_ai.store.models import AppSettings, Prompt


@dataclass
class ContextSnapshot:
    selected_text: str | None = None
    clipboard: str | None = None
    screen_text: str | None = None


def _block(tag: str, text: str) -> str:
    return f"\n\n<{tag}>\n{text}\n</{tag}>"


def build_context_sections(settings: AppSettings, context: ContextSnapshot) -> str:
    sections = []

    profile = settings.user_profile_context.strip()
    if settings.use_user_profile_context and profile:
        sections.append(_block("USER_PROFILE", profile))
    if settings.use_selected_text_context and context.selected_text:
        sections.append(_block("CURRENTLY_SELECTED_TEXT", context.selected_text))
    if settings.use_clipboard_context and context.clipboard:
        sections.append(_block("CLIPBOARD_CONTEXT", context.clipboard))
    if settings.use_screen_capture_context and context.screen_text:
        sections.append(_block("CURRENT_WINDOW_CONTEXT", context.screen_text))

    return "".join(sections)


def build_system_message(prompt: Prompt | None, settings: AppSettings, context: ContextSnapshot) -> str:
    sections = build_context_sections(settings, context)
    if prompt is None:
        return sections
    return prompt.final_prompt_text + sections


def format_transcript(text: str) -> str:
    return f"\n<TRANSCRIPT>\n{text}\n</TRANSCRIPT>"
