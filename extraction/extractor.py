"""Field extractor turning one free-text message into candidate context values.

Applies deterministic rules in order; the first rule to fill a field slot wins:
1. Compound record (organization line followed by a call-identifier line)
2. Labelled fields ("Organisation: ...", "Project: ...", "Call: ...")
3. Call identifier embedded anywhere in the message
4. Sequential fallback: the whole message against the next unset field
"""

import logging
import re
from typing import Dict, List, Optional

from contracts import ApplicationContext, ExtractionResult
from validation import InputValidator, get_validator, sanitize, CALL_TOKEN_RE
from config import KNOWN_PROGRAMS, PROGRAM_TEMPLATES


logger = logging.getLogger(__name__)


class FieldExtractor:
    """Extracts gating fields from user messages.

    Stateless: the current context is only read to know which slots are open.
    """

    # Gating fields in the order the conversation asks for them
    FIELD_ORDER = ["organization_name", "project_title", "call"]

    # Leading bullet characters stripped from each line
    BULLET_RE = re.compile(r"^[\s•·*\-–>]+")

    # "Label: value" forms accepted per field
    LABEL_PATTERNS: Dict[str, re.Pattern] = {
        "organization_name": re.compile(
            r"^(?:organi[sz]ation(?:sname)?|organi[sz]ation name|name der organisation)\s*:\s*(.+)$",
            re.IGNORECASE,
        ),
        "project_title": re.compile(
            r"^(?:projekt(?:titel)?|project(?: title)?|titel|title)\s*:\s*(.+)$",
            re.IGNORECASE,
        ),
        "call": re.compile(
            r"^(?:call(?:[-\s]?(?:id|identifier|identifikation|identification))?|ausschreibung)\s*:\s*(.+)$",
            re.IGNORECASE,
        ),
    }

    # Optional "Call...:" label in front of a call identifier
    CALL_LABEL_RE = re.compile(r"^call[\w\s-]*?:\s*", re.IGNORECASE)

    def __init__(self, validator: Optional[InputValidator] = None):
        """Initialize the extractor.

        Args:
            validator: Validator used to accept or reject candidates
        """
        self.validator = validator or get_validator()

    def extract(
        self,
        message: str,
        context: Optional[ApplicationContext] = None,
    ) -> ExtractionResult:
        """Extract candidate field values from one message.

        Args:
            message: Raw user message
            context: Current context; fields already set are not proposed again

        Returns:
            ExtractionResult with the accepted patch and per-field rejections
        """
        context = context or ApplicationContext()
        result = ExtractionResult()
        if not message or not message.strip():
            return result

        open_fields = [f for f in self.FIELD_ORDER if not getattr(context, f)]
        if not open_fields:
            logger.debug("All gating fields already set; nothing to extract")
            return result

        lines = [self._strip_bullets(line) for line in message.splitlines()]
        lines = [line for line in lines if line]

        # Stage 1-3: structured rules, each may fill remaining open slots
        stages = [
            ("compound", lambda: self._extract_compound(lines, open_fields, result.rejected)),
            ("labelled", lambda: self._extract_labelled(lines, open_fields, result.rejected)),
            ("embedded_call", lambda: self._extract_embedded_call(message, open_fields)),
        ]
        for rule_name, stage in stages:
            remaining = [f for f in open_fields if f not in result.patch]
            if not remaining:
                break
            found = stage()
            found = {k: v for k, v in found.items() if k in remaining}
            if found:
                result.patch.update(found)
                result.matched_rule = result.matched_rule or rule_name
                logger.debug("Rule %s matched fields %s", rule_name, list(found))

        # Stage 4: sequential fallback only when no structured rule matched
        if not result.patch:
            for field in open_fields:
                validation = self.validator.validate(field, message)
                if validation.is_valid:
                    result.patch[field] = validation.sanitized_value
                    result.matched_rule = "sequential"
                    break
                result.rejected[field] = validation.reason

        if result.patch:
            # Rejections for slots that ended up filled are no longer relevant
            result.rejected = {k: v for k, v in result.rejected.items() if k not in result.patch}
            result.patch.update(self._resolve_program(result.patch.get("call"), context))

        return result

    def _extract_compound(
        self,
        lines: List[str],
        open_fields: List[str],
        rejected: Dict[str, str],
    ) -> Dict[str, str]:
        """Organization-like line followed by a line starting with a call identifier."""
        if len(lines) < 2:
            return {}

        for call_index in range(1, len(lines)):
            call_token = self._leading_call_token(lines[call_index])
            if not call_token:
                continue

            for org_index in range(call_index - 1, -1, -1):
                org_result = self.validator.validate_organization_name(
                    self._organization_phrase(lines[org_index])
                )
                if not org_result.is_valid:
                    continue

                call_result = self.validator.validate_call_identifier(call_token)
                if not call_result.is_valid:
                    rejected["call"] = call_result.reason
                    return {}

                patch = {}
                if "organization_name" in open_fields:
                    patch["organization_name"] = org_result.sanitized_value
                if "call" in open_fields:
                    patch["call"] = call_result.sanitized_value
                return patch

        return {}

    def _extract_labelled(
        self,
        lines: List[str],
        open_fields: List[str],
        rejected: Dict[str, str],
    ) -> Dict[str, str]:
        """Explicit "Label: value" lines."""
        patch: Dict[str, str] = {}
        for line in lines:
            for field in open_fields:
                if field in patch:
                    continue
                match = self.LABEL_PATTERNS[field].match(line)
                if not match:
                    continue
                value = match.group(1).strip()
                if field == "call":
                    token = CALL_TOKEN_RE.search(value)
                    value = token.group(0) if token else value
                validation = self.validator.validate(field, value)
                if validation.is_valid:
                    patch[field] = validation.sanitized_value
                else:
                    rejected[field] = validation.reason
                break
        return patch

    def _extract_embedded_call(self, message: str, open_fields: List[str]) -> Dict[str, str]:
        """First valid call identifier found anywhere in the message."""
        if "call" not in open_fields:
            return {}
        for token in CALL_TOKEN_RE.findall(message):
            validation = self.validator.validate_call_identifier(token)
            if validation.is_valid:
                return {"call": validation.sanitized_value}
        return {}

    def _resolve_program(
        self,
        call: Optional[str],
        context: ApplicationContext,
    ) -> Dict[str, str]:
        """Derive program type and template from a newly found call identifier."""
        if not call:
            return {}
        prefix = call.split("-", 1)[0]
        resolved: Dict[str, str] = {}
        if prefix in KNOWN_PROGRAMS and not context.program_type:
            resolved["program_type"] = prefix
        template_id = PROGRAM_TEMPLATES.get(prefix)
        if template_id and not context.template_id:
            resolved["template_id"] = template_id
        return resolved

    def _leading_call_token(self, line: str) -> Optional[str]:
        text = self.CALL_LABEL_RE.sub("", line, count=1).strip()
        match = CALL_TOKEN_RE.match(text)
        return match.group(0) if match else None

    def _organization_phrase(self, line: str) -> str:
        label = self.LABEL_PATTERNS["organization_name"].match(line)
        if label:
            return sanitize(label.group(1))
        return sanitize(line.split(":", 1)[0])

    def _strip_bullets(self, line: str) -> str:
        return self.BULLET_RE.sub("", line).strip()


def extract_fields(
    message: str,
    context: Optional[ApplicationContext] = None,
) -> ExtractionResult:
    """Convenience function for extracting fields from a message.

    Args:
        message: Raw user message
        context: Current context

    Returns:
        ExtractionResult with the candidate patch
    """
    extractor = FieldExtractor()
    return extractor.extract(message, context)
