"""
Message template service for rendering automated messages with placeholders.

Templates use double-brace placeholders (e.g. {{patientName}}, {{peptideType}}).
Only a fixed set of placeholders is supported; each one is filled from the
firing context with a readable fallback when the value is missing. Any other
{{...}} token is left in the text untouched.
"""

import logging
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from core.config import ADMIN_DISPLAY_NAME
from utils.datetime_utils import engine_now, format_display_date, format_display_time

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Za-z0-9_]+)\}\}")


def _patient_field(context: Mapping, field: str) -> Any:
    patient = context.get("patient")
    if isinstance(patient, Mapping):
        return patient.get(field)
    return None


def _lookup(context_key: str, patient_field: Optional[str], fallback: str) -> Callable[[Mapping, datetime], Any]:
    """Build a resolver: context key, then the nested patient record, then the fallback."""
    def resolve(context: Mapping, now: datetime) -> Any:
        value = context.get(context_key)
        if not value and patient_field:
            value = _patient_field(context, patient_field)
        return value or fallback
    return resolve


# Supported placeholders and how each one is resolved
PLACEHOLDER_RESOLVERS: Dict[str, Callable[[Mapping, datetime], Any]] = {
    "patientName": _lookup("patientName", "first_name", "there"),
    "currentWeek": _lookup("currentWeek", "current_week", "1"),
    "peptideType": _lookup("peptideType", "peptide_type", "your peptide"),
    "currentWeight": _lookup("currentWeight", "current_weight", "your current weight"),
    "startWeight": _lookup("startWeight", "start_weight", "your starting weight"),
    "adminName": _lookup("adminName", None, ADMIN_DISPLAY_NAME),
    "date": lambda context, now: format_display_date(now),
    "time": lambda context, now: format_display_time(now),
}

SUPPORTED_PLACEHOLDERS = frozenset(PLACEHOLDER_RESOLVERS)


class MessageTemplateService:
    """Service for rendering message templates with placeholders."""

    @staticmethod
    def render(
        content: str,
        context: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None
    ) -> str:
        """
        Render message template with placeholders.

        Every supported placeholder is replaced (all occurrences) with its
        context value or fallback. Unsupported placeholders stay verbatim.

        Args:
            content: Template text with {{placeholder}} tokens
            context: Firing context (top-level camelCase keys, optional 'patient' mapping)
            now: Render time for {{date}} / {{time}} (defaults to engine now)

        Returns:
            Rendered message
        """
        if not isinstance(context, Mapping):
            context = {}
        render_time = now or engine_now()

        def replace(match: "re.Match[str]") -> str:
            name = match.group(1)
            resolver = PLACEHOLDER_RESOLVERS.get(name)
            if resolver is None:
                return match.group(0)
            return str(resolver(context, render_time))

        return PLACEHOLDER_PATTERN.sub(replace, content)

    @staticmethod
    def extract_placeholders(content: str) -> List[str]:
        """
        Extract placeholder names used in a template, in order of first use.

        Args:
            content: Template text

        Returns:
            Unique placeholder names
        """
        seen: List[str] = []
        for name in PLACEHOLDER_PATTERN.findall(content):
            if name not in seen:
                seen.append(name)
        return seen

    @staticmethod
    def find_unsupported_placeholders(content: str) -> List[str]:
        """
        Return placeholders that render() will leave verbatim.

        Useful for warning authors before a template goes live.
        """
        return [
            name for name in MessageTemplateService.extract_placeholders(content)
            if name not in SUPPORTED_PLACEHOLDERS
        ]
