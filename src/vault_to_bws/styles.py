"""Styling for questionary prompts.

Used by the confirmation prompts shown before a migration starts.
"""

from questionary import Style

PROMPT_STYLE = Style(
    [
        ("qmark", "fg:#ffaf00 bold"),  # Amber question mark
        ("question", "bold"),
        ("answer", "fg:#87d787 bold"),
        ("instruction", "fg:#6c6c6c italic"),
        ("text", ""),
    ]
)

QMARK = "? "
