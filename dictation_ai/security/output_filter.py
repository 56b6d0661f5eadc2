"""Post-processing of model output before it replaces the transcript.

Models sometimes wrap the answer in boilerplate: reasoning blocks, the
echoed <TRANSCRIPT> tags, a code fence or a "Here is the ..." preamble.
Each pattern below strips one such artefact. The filter never adds text.
"""

import re

# Removed wherever they occur
_STRIP_PATTERNS: list[re.Pattern] = [
    re.compile(r"<think>.*?</think>", re.S | re.I),
    re.compile(r"<thinking>.*?</thinking>", re.S | re.I),
    re.compile(r"<reasoning>.*?</reasoning>", re.S | re.I),
]

# Whole-output wrappers: the inner group is kept
_UNWRAP_PATTERNS: list[re.Pattern] = [
    re.compile(r"^<TRANSCRIPT>\s*(.*?)\s*</TRANSCRIPT>$", re.S | re.I),
    re.compile(r"^```[\w-]*\n(.*?)\n?```$", re.S),
]

# Leading chatter on its own line
_PREAMBLE = re.compile(
    r"^(here(?:'s| is) (?:the |your )?(?:enhanced|cleaned|corrected|edited|improved|polished|revised)"
    r"[^\n]*?:|sure[,!.]?[^\n]*?:)[ \t]*\n+",
    re.I,
)


def filter_output(text: str) -> str:
    result = text.strip()

    for pattern in _STRIP_PATTERNS:
        result = pattern.sub("", result)
    result = result.strip()

    result = _PREAMBLE.sub("", result, count=1).strip()

    for pattern in _UNWRAP_PATTERNS:
        match = pattern.match(result)
        if match:
            result = match.group(1).strip()

    # Stray tags left when the model only echoed one side
    result = re.sub(r"</?TRANSCRIPT>", "", result, flags=re.I).strip()
    return result
