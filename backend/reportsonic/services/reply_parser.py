"""
Parsing of free-form provider replies into an AnalysisPayload.

Replies are parsed in two phases. The strict phase extracts the first
balanced JSON object from the text; if that fails for any reason the
lenient phase wraps the raw reply so callers always get a payload.
"""
import re
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from reportsonic.core.schemas import AnalysisPayload

logger = logging.getLogger(__name__)

SUMMARY_PREVIEW_LENGTH = 300

BULLET_PREFIX = re.compile(r'^\s*[-*•]\s*')

# camelCase reply keys mapped to payload fields (snake_case keys also accepted)
LIST_FIELDS = {
    'insights': 'insights',
    'trends': 'trends',
    'qualityIssues': 'quality_issues',
    'recommendations': 'recommendations',
    'businessApplications': 'business_applications',
    'riskOpportunities': 'risk_opportunities',
    'nextSteps': 'next_steps',
}


class ReplyParseError(ValueError):
    """The reply does not contain a usable JSON object."""


def find_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} block in text, or None.

    Braces inside JSON strings (including escaped quotes) are ignored.
    """
    start = text.find('{')
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == '\\':
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        # Unbalanced from here; try the next opening brace
        start = text.find('{', start + 1)
    return None


def _strip_bullet(item: str) -> str:
    return BULLET_PREFIX.sub('', item).strip()


def _as_string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, list):
        items = value
    else:
        items = [value]
    cleaned = []
    for item in items:
        if item is None:
            continue
        text = item if isinstance(item, str) else json.dumps(item, default=str)
        text = _strip_bullet(text)
        if text:
            cleaned.append(text)
    return cleaned


def _as_statistics(value: Any) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if isinstance(value, dict):
        # {"Revenue": {...}, "Units": {...}} style replies
        if value and all(isinstance(v, dict) for v in value.values()):
            return [{'column': key, **stats} for key, stats in value.items()]
        return [value]
    if not isinstance(value, list):
        value = [value]
    return [item if isinstance(item, dict) else {'detail': str(item)} for item in value]


def parse_strict(text: str) -> AnalysisPayload:
    block = find_json_object(text)
    if block is None:
        raise ReplyParseError("no JSON object found in reply")
    try:
        data = json.loads(block)
    except json.JSONDecodeError as e:
        raise ReplyParseError(f"invalid JSON in reply: {e}") from e
    if not isinstance(data, dict):
        raise ReplyParseError("reply JSON is not an object")

    summary = data.get('summary')
    if isinstance(summary, list):
        summary = ' '.join(str(part) for part in summary)
    elif summary is not None and not isinstance(summary, str):
        summary = str(summary)

    fields: Dict[str, Any] = {
        field: _as_string_list(data.get(key, data.get(field)))
        for key, field in LIST_FIELDS.items()
    }
    return AnalysisPayload(
        summary=summary.strip() if summary else None,
        statistics=_as_statistics(data.get('statistics')),
        **fields,
    )


def parse_lenient(text: str) -> AnalysisPayload:
    summary = text[:SUMMARY_PREVIEW_LENGTH]
    if len(text) > SUMMARY_PREVIEW_LENGTH:
        summary += '...'
    return AnalysisPayload(summary=summary, insights=[text] if text else [])


def parse_provider_reply(text: str) -> AnalysisPayload:
    """
    Parse a provider reply into an AnalysisPayload.

    Never raises: a reply without a usable JSON object becomes a payload
    whose summary is a preview of the raw text and whose only insight is
    the raw text itself.
    """
    text = text or ''
    try:
        return parse_strict(text)
    except (ReplyParseError, ValidationError) as e:
        logger.debug(f"Falling back to lenient reply parsing: {e}")
        return parse_lenient(text)
