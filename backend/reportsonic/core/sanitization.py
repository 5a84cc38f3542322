"""
Sanitization for user-provided text that ends up in prompts or logs.
"""
import re

# Phrases that read like role switches or instructions to a model
PROMPT_INJECTION_PATTERNS = ('SYSTEM:', 'USER:', 'ASSISTANT:', 'IGNORE', 'FORGET', 'NEW INSTRUCTION')


def sanitize_for_prompt(text: str, max_length: int = 100) -> str:
    """
    Sanitize dataset text (headers, cell values) before including it in a prompt.

    - Removes newlines, tabs and other non-printable characters
    - Limits length
    - Brackets patterns that look like instructions
    """
    if text is None:
        return ""
    text = str(text)
    if not text:
        return ""

    sanitized = ''.join(char for char in text if char.isprintable() and char not in '\n\r\t')

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    for pattern in PROMPT_INJECTION_PATTERNS:
        sanitized = sanitized.replace(pattern, f'[{pattern}]')

    return sanitized


def sanitize_for_logging(value: str, max_length: int = 500) -> str:
    """
    Sanitize value for safe logging (prevents log injection).

    Args:
        value: Value to sanitize (provider error text, header names)
        max_length: Maximum length

    Returns:
        Sanitized value safe for logging
    """
    if not value:
        return ""

    value = re.sub(r'[\r\n]', ' ', str(value))
    value = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', value)

    if len(value) > max_length:
        value = value[:max_length] + "..."

    return value
